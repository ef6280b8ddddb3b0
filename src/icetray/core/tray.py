"""Tray: drives frames from a start module through an ordered list of modules."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

from .errors import UsageError
from .file import FileMode, FrameFile
from .frame import Frame
from .module import (
    FileSink,
    FileSource,
    FunctionModule,
    FunctionModuleType,
    InfiniteSource,
    Module,
    StartModule,
)
from .schema import TrayConfig
from .utils import get_logger, set_log_level

logger = get_logger(__name__)

UNBOUNDED = sys.maxsize


class Tray:
    """
    A tray of modules.

    The tray owns one start module and an append-only list of modules. Each
    iteration asks the start module for a frame and threads it through every
    module in the order they were added. The final frame is discarded; a
    module such as ``FileSink`` is responsible for keeping output.

    Example:
        >>> tray = Tray(InfiniteSource())
        >>> tray = tray.add_fn(lambda frame: frame)
        >>> tray.run_bounded(10)
        10
    """

    def __init__(self, start_module: StartModule) -> None:
        """
        Initialize a tray.

        Args:
            start_module: The stage producing frames
        """
        if not isinstance(start_module, StartModule):
            raise TypeError(
                f"Tray needs a StartModule, not {type(start_module).__name__}"
            )
        self.start_module = start_module
        self._modules: list[Module] = []
        self._running = False
        logger.info("Created tray with start module %r", start_module)

    @property
    def modules(self) -> tuple[Module, ...]:
        """Modules in execution order."""
        return tuple(self._modules)

    def add(self, module: Module | FunctionModuleType) -> Tray:
        """
        Add a module to the end of the tray.

        Args:
            module: A Module, or a plain function taking and returning a Frame

        Returns:
            Self for chaining
        """
        if self._running:
            logger.error("Cannot add %r while the tray is running", module)
            raise UsageError("Cannot add modules while the tray is running")
        if isinstance(module, Module):
            self._modules.append(module)
        elif callable(module):
            self._modules.append(FunctionModule(module))
        else:
            raise TypeError(f"Cannot add {type(module).__name__} to a tray")
        logger.debug("Added module %r at position %s", self._modules[-1], len(self._modules))
        return self

    def add_fn(self, fn: FunctionModuleType, name: str | None = None) -> Tray:
        """Add a function module to the tray and return self."""
        return self.add(FunctionModule(fn, name=name))

    def run(self) -> int:
        """Run the tray until the start module ends. Returns frames processed."""
        return self.run_bounded(UNBOUNDED)

    def run_bounded(self, num: int) -> int:
        """
        Run the tray for *num* frames, or until it ends on its own.

        Args:
            num: Maximum number of frames to process

        Returns:
            Number of frames that went through every module
        """
        with self._run_guard(num):
            processed = 0
            while processed < num:
                if not self._step(processed):
                    break
                processed += 1
            self._log_finished(processed, num)
            return processed

    async def run_async(self) -> int:
        """Asynchronous variant of :meth:`run`."""
        return await self.run_bounded_async(UNBOUNDED)

    async def run_bounded_async(self, num: int) -> int:
        """
        Asynchronous variant of :meth:`run_bounded`.

        Control is yielded to the event loop between frames only, never while
        a module is processing, so ordering is the same as the blocking run.
        """
        with self._run_guard(num):
            processed = 0
            while processed < num:
                if not self._step(processed):
                    break
                processed += 1
                await asyncio.sleep(0)
            self._log_finished(processed, num)
            return processed

    def _step(self, index: int) -> bool:
        """Run one start + modules iteration. Returns False once the source ends."""
        frame = self.start_module.start()
        if frame is None:
            logger.info("Start module %r ended after %s frames", self.start_module, index)
            return False
        if not isinstance(frame, Frame):
            raise TypeError(
                f"Start module {self.start_module!r} returned {type(frame).__name__} "
                "instead of Frame"
            )

        for position, module in enumerate(self._modules, 1):
            try:
                result = module.process(frame)
            except Exception as e:
                logger.error(
                    f"Frame {index}: module {position}/{len(self._modules)} {module!r} "
                    f"failed with error: {e}"
                )
                raise
            if not isinstance(result, Frame):
                raise TypeError(
                    f"Module {module!r} returned {type(result).__name__} instead of Frame"
                )
            frame = result
        logger.debug("Frame %s passed through %s modules", index, len(self._modules))
        return True

    @contextmanager
    def _run_guard(self, num: int) -> Iterator[None]:
        if num < 0:
            raise ValueError(f"Number of frames must be non-negative, got {num}")
        if self._running:
            raise UsageError("Tray is already running")
        bound = "unbounded" if num == UNBOUNDED else f"up to {num} frames"
        logger.info(f"Starting tray with {len(self._modules)} modules ({bound})")
        self._running = True
        try:
            yield
        finally:
            self._running = False

    def _log_finished(self, processed: int, num: int) -> None:
        logger.info("Tray finished after %s frames", processed)
        if processed == num and num != UNBOUNDED:
            logger.debug("Tray stopped at its bound of %s frames", num)

    def __len__(self) -> int:
        """Get the number of modules."""
        return len(self._modules)

    def __repr__(self) -> str:
        """String representation of the tray."""
        names = [repr(self.start_module)] + [repr(module) for module in self._modules]
        return f"Tray({' -> '.join(names)})"


@contextmanager
def configured_tray(config: TrayConfig) -> Iterator[Tray]:
    """
    Build a tray from *config* and close its files on exit.

    The tray reads from ``config.source`` (or an infinite source of empty
    frames) and, when ``config.sink`` is set, ends with a ``FileSink``.
    Further modules can be added before running.

    Args:
        config: Validated tray configuration

    Yields:
        The assembled Tray
    """
    set_log_level(config.log_level)
    with ExitStack() as stack:
        if config.source is not None:
            source_file = stack.enter_context(FrameFile(config.source, FileMode.READ))
            start: StartModule = FileSource(source_file)
        else:
            start = InfiniteSource()

        tray = Tray(start)
        if config.sink is not None:
            mode = FileMode.APPEND if config.append else FileMode.WRITE
            sink_file = stack.enter_context(FrameFile(config.sink, mode))
            tray.add(FileSink(sink_file))

        yield tray


def run_config(config: TrayConfig) -> int:
    """Run the tray described by *config* and return the number of frames processed."""
    with configured_tray(config) as tray:
        if config.max_frames is None:
            return tray.run()
        return tray.run_bounded(config.max_frames)
