"""Exception hierarchy for frames, codecs and frame files.

There are two families:

- ``FrameError`` and its subclasses are recoverable data errors (missing keys,
  wrong types, malformed records).
- ``UsageError`` and its subclasses signal programming or configuration
  mistakes (wrong file mode, unopenable path, mutating a shared ancestor).
  They are not ``FrameError`` subclasses.
"""


class FrameError(Exception):
    """Base class for recoverable frame data errors."""


class KeyNotFoundError(FrameError, KeyError):
    """Raised when a key is absent from the searched frame storage."""

    def __init__(self, key: str, message: str | None = None) -> None:
        super().__init__(message or f'No key "{key}" in frame')
        self.key = key

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class TypeMismatchError(FrameError, TypeError):
    """Raised when a stored value is not an instance of the requested type."""

    def __init__(self, key: str, expected: object, actual: type) -> None:
        expected_name = getattr(expected, "__name__", repr(expected))
        super().__init__(
            f'Key "{key}" is not of specified type: expected {expected_name}, '
            f"found {actual.__name__}"
        )
        self.key = key
        self.expected = expected
        self.actual = actual


class UnregisteredTypeError(FrameError, TypeError):
    """Raised when a value has no registered value type."""

    def __init__(self, value_type: type) -> None:
        super().__init__(f"No value type registered for {value_type.__qualname__}")
        self.value_type = value_type


class FrameDecodeError(FrameError, ValueError):
    """Raised when an encoded frame record is truncated or malformed."""


class FrameEncodeError(FrameError, ValueError):
    """Raised when a frame value cannot be encoded."""


class UsageError(RuntimeError):
    """Raised when an API is used in a way it never supports."""


class FileModeError(UsageError):
    """Raised when reading a write-only file or writing a read-only file."""


class FileOpenError(UsageError):
    """Raised when a frame file cannot be opened."""


class FrozenFrameError(UsageError):
    """Raised when mutating a frame that has been shared as an ancestor."""
