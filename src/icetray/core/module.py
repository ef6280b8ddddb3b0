"""Pipeline stages: start modules produce frames, modules transform them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from .errors import FileModeError
from .file import FileMode, FrameFile
from .frame import Frame
from .utils import get_logger

logger = get_logger(__name__)

FunctionModuleType = Callable[[Frame], Frame]


class Module(ABC):
    """
    Base class for transform stages.

    A module takes one Frame and returns one Frame: the same instance
    (possibly modified) or a replacement. It cannot drop or split frames.
    """

    @abstractmethod
    def process(self, frame: Frame) -> Frame:
        """Transform *frame* and return the frame to pass on."""
        raise NotImplementedError

    def __repr__(self) -> str:
        """String representation of the module."""
        return f"{self.__class__.__name__}()"


class StartModule(ABC):
    """
    Base class for start stages.

    A start module produces the next Frame to feed a Tray, or ``None`` once
    its sequence has ended.
    """

    @abstractmethod
    def start(self) -> Frame | None:
        """Return the next frame, or ``None`` when there are no more."""
        raise NotImplementedError

    def __repr__(self) -> str:
        """String representation of the start module."""
        return f"{self.__class__.__name__}()"


class FunctionModule(Module):
    """
    A module that wraps a function.

    Useful for quick transformations without defining a new class.
    """

    def __init__(self, fn: FunctionModuleType, name: str | None = None) -> None:
        """
        Initialize a function module.

        Args:
            fn: Function that takes and returns a Frame
            name: Optional name for the module (defaults to the function name)
        """
        if not callable(fn):
            raise TypeError(f"FunctionModule needs a callable, not {type(fn).__name__}")
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "FunctionModule")

    def process(self, frame: Frame) -> Frame:
        """Execute the wrapped function."""
        return self.fn(frame)

    def __repr__(self) -> str:
        """String representation."""
        return f"FunctionModule({self.name})"


class InfiniteSource(StartModule):
    """A start module that never ends and produces empty frames."""

    def start(self) -> Frame | None:
        return Frame()


class IterableSource(StartModule):
    """A start module that hands out the frames of an iterable, then ends."""

    def __init__(self, frames: Iterable[Frame]) -> None:
        self._frames = iter(frames)

    def start(self) -> Frame | None:
        frame = next(self._frames, None)
        if frame is not None and not isinstance(frame, Frame):
            raise TypeError(f"IterableSource produced {type(frame).__name__} instead of Frame")
        return frame


class FileSource(StartModule):
    """
    A start module reading frames from a FrameFile.

    The source ends when the file ends at a frame boundary. Truncated or
    malformed records raise ``FrameDecodeError`` out of the Tray.
    """

    def __init__(self, file: FrameFile) -> None:
        """
        Initialize a file source.

        Args:
            file: FrameFile opened in read mode
        """
        if file.mode is not FileMode.READ:
            raise FileModeError(
                f"FileSource needs a file opened for reading, got {file.mode.value}"
            )
        self.file = file

    def start(self) -> Frame | None:
        frame = self.file.read_frame()
        if frame is None:
            logger.info("FileSource reached end of %s", self.file.path)
        return frame

    def __repr__(self) -> str:
        """String representation."""
        return f"FileSource({str(self.file.path)!r})"


class FileSink(Module):
    """A module that writes every frame to a FrameFile and passes it on unchanged."""

    def __init__(self, file: FrameFile) -> None:
        """
        Initialize a file sink.

        Args:
            file: FrameFile opened in write or append mode
        """
        if file.mode is FileMode.READ:
            raise FileModeError("FileSink needs a file opened for writing or appending")
        self.file = file

    def process(self, frame: Frame) -> Frame:
        self.file.write_frame(frame)
        return frame

    def __repr__(self) -> str:
        """String representation."""
        return f"FileSink({str(self.file.path)!r})"
