"""Reading and writing files of frames."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import IO, TYPE_CHECKING

from .codec import read_frame, write_frame
from .errors import FileModeError, FileOpenError, UsageError
from .frame import Frame
from .utils import get_logger

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from .registry import ValueTypeRegistry

logger = get_logger(__name__)


class FileMode(str, Enum):
    """Different ways to open a FrameFile."""

    READ = "read"
    WRITE = "write"
    APPEND = "append"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value


_OPEN_FLAGS = {
    FileMode.READ: "rb",
    FileMode.WRITE: "wb",
    FileMode.APPEND: "ab",
}


class FrameFile:
    """
    A file holding a sequence of frames.

    The file is a plain concatenation of encoded frame records with no header
    or footer. The only well-formed way for it to end is at a record boundary.

    Example:
        >>> with FrameFile(path, FileMode.WRITE) as out:
        ...     out.write_frame(frame)
        >>> with FrameFile(path) as src:
        ...     frames = list(src)

    Attributes:
        path: Location of the file
        mode: The FileMode fixed at construction
        frames_read: Number of frames decoded so far
        frames_written: Number of frames encoded so far
    """

    def __init__(
        self,
        path: str | Path,
        mode: FileMode | str = FileMode.READ,
        *,
        registry: ValueTypeRegistry | None = None,
    ) -> None:
        """
        Open *path* in *mode*.

        Args:
            path: File to open
            mode: ``read`` (must exist), ``write`` (create or truncate) or
                ``append`` (create or extend)
            registry: Value type registry used when decoding

        Raises:
            FileOpenError: If the file cannot be opened
        """
        self.path = Path(path)
        self.mode = FileMode(mode) if isinstance(mode, str) else mode
        self.registry = registry
        self.frames_read = 0
        self.frames_written = 0

        try:
            self._handle: IO[bytes] = open(self.path, _OPEN_FLAGS[self.mode])
        except OSError as exc:
            logger.error("Cannot open frame file %s (%s): %s", self.path, self.mode, exc)
            raise FileOpenError(f"Cannot open file {self.path}: {exc}") from exc

        logger.info("Opened frame file %s in %s mode", self.path, self.mode.value)

    @property
    def closed(self) -> bool:
        """Whether the underlying handle has been closed."""
        return self._handle.closed

    def read_frame(self) -> Frame | None:
        """
        Read the next frame from the file.

        Returns:
            The next Frame, or ``None`` when the file ends at a frame boundary

        Raises:
            FrameDecodeError: If the next record is truncated or malformed
            FileModeError: If the file was opened for writing
            OSError: If reading the file fails
        """
        self._require(FileMode.READ, "read from")
        frame = read_frame(self._handle, registry=self.registry)
        if frame is not None:
            self.frames_read += 1
            logger.debug("Read frame %s from %s", self.frames_read, self.path)
        return frame

    def write_frame(self, frame: Frame) -> None:
        """
        Append *frame* to the file.

        Raises:
            FrameEncodeError: If a value cannot be encoded
            FileModeError: If the file was opened for reading
            OSError: If writing the file fails
        """
        self._require(FileMode.WRITE, "write to")
        write_frame(frame, self._handle)
        self.frames_written += 1
        logger.debug("Wrote frame %s to %s", self.frames_written, self.path)

    def flush(self) -> None:
        """Flush buffered output to the operating system."""
        self._require_open()
        if self.mode is not FileMode.READ:
            self._handle.flush()

    def close(self) -> None:
        """Close the file. Closing twice is a no-op."""
        if self._handle.closed:
            return
        self._handle.close()
        logger.info(
            "Closed frame file %s (read=%s, written=%s)",
            self.path,
            self.frames_read,
            self.frames_written,
        )

    def _require_open(self) -> None:
        if self._handle.closed:
            logger.error("Operation on closed frame file %s", self.path)
            raise UsageError(f"Frame file {self.path} is closed")

    def _require(self, wanted: FileMode, action: str) -> None:
        self._require_open()
        readable = self.mode is FileMode.READ
        if readable != (wanted is FileMode.READ):
            kind = "read-only" if readable else "write-only"
            logger.error("Trying to %s a %s file: %s", action, kind, self.path)
            raise FileModeError(f"Trying to {action} a {kind} file: {self.path}")

    def __iter__(self) -> Iterator[Frame]:
        """Yield the remaining frames until the file ends."""
        while True:
            frame = self.read_frame()
            if frame is None:
                return
            yield frame

    def __enter__(self) -> FrameFile:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        """String representation."""
        state = "closed" if self.closed else "open"
        return f"FrameFile({str(self.path)!r}, mode={self.mode.value}, {state})"
