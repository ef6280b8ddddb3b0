"""Common test fixtures and utilities."""

from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np
import pytest

from icetray.core.file import FileMode, FrameFile
from icetray.core.frame import Frame
from icetray.core.values import UInt8


@pytest.fixture
def frame_path(tmp_path: Path) -> Path:
    """Path for a frame file inside a temporary directory."""
    return tmp_path / "frames.i3"


@pytest.fixture
def sample_frame() -> Frame:
    """Create a frame holding one value of several built-in types."""
    frame = Frame()
    frame.set("run_id", "run-0042")
    frame.set("trigger", UInt8(7))
    frame.set("event_id", 123456789)
    frame.set("energy", 1.5e3)
    frame.set("is_physics", True)
    frame.set("raw", b"\x00\x01\xff")
    frame.set("charges", np.array([0.5, 1.25, 3.0]))
    return frame


@pytest.fixture
def write_frames() -> Callable[[Path, Sequence[Frame]], None]:
    """Return a helper writing frames to a new file."""

    def _write(path: Path, frames: Sequence[Frame]) -> None:
        with FrameFile(path, FileMode.WRITE) as out:
            for frame in frames:
                out.write_frame(frame)

    return _write


@pytest.fixture
def numbered_frames() -> Callable[[int], list[Frame]]:
    """Return a helper building *n* frames with an ``index`` key."""

    def _build(n: int) -> list[Frame]:
        frames = []
        for i in range(n):
            frame = Frame()
            frame.set("index", i)
            frames.append(frame)
        return frames

    return _build
