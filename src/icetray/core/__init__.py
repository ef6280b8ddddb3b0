"""Core module containing frames, their file format, and the tray runner."""

from icetray.core.errors import (
    FileModeError,
    FileOpenError,
    FrameDecodeError,
    FrameEncodeError,
    FrameError,
    FrozenFrameError,
    KeyNotFoundError,
    TypeMismatchError,
    UnregisteredTypeError,
    UsageError,
)
from icetray.core.file import FileMode, FrameFile
from icetray.core.frame import Frame
from icetray.core.module import (
    FileSink,
    FileSource,
    FunctionModule,
    InfiniteSource,
    IterableSource,
    Module,
    StartModule,
)
from icetray.core.registry import ValueTypeRegistry, ValueTypeSpec, default_registry
from icetray.core.schema import TrayConfig, load_tray_config
from icetray.core.tray import Tray, configured_tray, run_config
from icetray.core.values import Storable, UInt8

__all__ = [
    "Frame",
    "FrameFile",
    "FileMode",
    "Module",
    "StartModule",
    "FunctionModule",
    "InfiniteSource",
    "IterableSource",
    "FileSource",
    "FileSink",
    "Tray",
    "TrayConfig",
    "configured_tray",
    "run_config",
    "load_tray_config",
    "Storable",
    "UInt8",
    "ValueTypeRegistry",
    "ValueTypeSpec",
    "default_registry",
    "FrameError",
    "KeyNotFoundError",
    "TypeMismatchError",
    "UnregisteredTypeError",
    "FrameDecodeError",
    "FrameEncodeError",
    "UsageError",
    "FileModeError",
    "FileOpenError",
    "FrozenFrameError",
]
