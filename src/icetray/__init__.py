"""icetray: frames, modules and trays for scientific event processing."""

__version__ = "0.1.0"

from icetray.core.file import FileMode, FrameFile
from icetray.core.frame import Frame
from icetray.core.module import FunctionModule, InfiniteSource, Module, StartModule
from icetray.core.tray import Tray
from icetray.core.values import UInt8

__all__ = [
    "Frame",
    "FrameFile",
    "FileMode",
    "Module",
    "StartModule",
    "FunctionModule",
    "InfiniteSource",
    "Tray",
    "UInt8",
    "__version__",
]
