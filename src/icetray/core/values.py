"""Storable value types shipped with icetray.

A value can live in a Frame when its type is registered on a
:class:`~icetray.core.registry.ValueTypeRegistry`. Registration records a
stable tag that is written next to every encoded value, so a reader can
rebuild the right Python type without being told what to expect.
"""

from __future__ import annotations

import copy
import io
import struct
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import numpy as np
import polars as pl

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from .registry import ValueTypeRegistry

_I64 = struct.Struct("<q")
_F64 = struct.Struct("<d")


class Storable(ABC):
    """
    Base class for user-defined frame values.

    Subclasses provide their own payload encoding and are registered with
    ``ValueTypeRegistry.decorator``.

    Once a frame is shared as an ancestor its values are replaced by
    :meth:`freeze`. The default freezes a private deep copy, and every read
    through a descendant hands out another deep copy. A subclass that
    overrides :meth:`freeze` to return a genuinely immutable object is read
    without copying.
    """

    def freeze(self) -> Storable:
        """Return the form of this value kept by a shared frame."""
        return copy.deepcopy(self)

    @abstractmethod
    def encode(self) -> bytes:
        """Return the payload bytes for this value."""
        raise NotImplementedError

    @classmethod
    @abstractmethod
    def decode(cls, payload: bytes) -> Storable:
        """Rebuild a value from payload bytes produced by :meth:`encode`."""
        raise NotImplementedError


class UInt8(int):
    """An unsigned byte (0-255)."""

    def __new__(cls, value: Any = 0) -> UInt8:
        number = int(value)
        if not 0 <= number <= 255:
            raise ValueError(f"UInt8 value out of range: {number}")
        return super().__new__(cls, number)

    def __repr__(self) -> str:
        return f"UInt8({int(self)})"


def _identity(value: Any) -> Any:
    return value


def _expect_length(payload: bytes, size: int, tag: str) -> None:
    if len(payload) != size:
        raise ValueError(f"{tag} payload must be {size} bytes, got {len(payload)}")


# Text and scalars ----------------------------------------------------------


def _encode_str(value: str) -> bytes:
    return value.encode("utf-8")


def _decode_str(payload: bytes) -> str:
    return payload.decode("utf-8")


def _encode_u8(value: int) -> bytes:
    return bytes([int(value)])


def _decode_u8(payload: bytes) -> UInt8:
    _expect_length(payload, 1, "u8")
    return UInt8(payload[0])


def _encode_i64(value: int) -> bytes:
    return _I64.pack(value)


def _decode_i64(payload: bytes) -> int:
    _expect_length(payload, _I64.size, "i64")
    return int(_I64.unpack(payload)[0])


def _encode_f64(value: float) -> bytes:
    return _F64.pack(value)


def _decode_f64(payload: bytes) -> float:
    _expect_length(payload, _F64.size, "f64")
    return float(_F64.unpack(payload)[0])


def _encode_bool(value: bool) -> bytes:
    return b"\x01" if value else b"\x00"


def _decode_bool(payload: bytes) -> bool:
    if payload not in (b"\x00", b"\x01"):
        raise ValueError(f"bool payload must be 0x00 or 0x01, got {payload!r}")
    return payload == b"\x01"


def _decode_bytes(payload: bytes) -> bytes:
    return bytes(payload)


# Array data ----------------------------------------------------------------


def _encode_ndarray(value: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    np.save(buffer, value, allow_pickle=False)
    return buffer.getvalue()


def _decode_ndarray(payload: bytes) -> np.ndarray:
    return np.load(io.BytesIO(payload), allow_pickle=False)


def _copy_ndarray(value: np.ndarray) -> np.ndarray:
    return value.copy()


def _freeze_ndarray(value: np.ndarray) -> np.ndarray:
    # Detached from every handle given out before the frame was shared
    frozen = value.copy()
    frozen.flags.writeable = False
    return frozen


def _encode_dataframe(value: pl.DataFrame) -> bytes:
    buffer = io.BytesIO()
    value.write_ipc(buffer)
    return buffer.getvalue()


def _decode_dataframe(payload: bytes) -> pl.DataFrame:
    return pl.read_ipc(io.BytesIO(payload))


def _copy_dataframe(value: pl.DataFrame) -> pl.DataFrame:
    return value.clone()


def register_builtin_value_types(registry: ValueTypeRegistry) -> None:
    """Register the value types every icetray installation understands."""
    registry.register(
        "str",
        str,
        encode=_encode_str,
        decode=_decode_str,
        copy=_identity,
        description="UTF-8 text",
    )
    registry.register(
        "u8",
        UInt8,
        encode=_encode_u8,
        decode=_decode_u8,
        copy=_identity,
        description="Unsigned byte",
    )
    registry.register(
        "i64",
        int,
        encode=_encode_i64,
        decode=_decode_i64,
        copy=_identity,
        description="Signed 64-bit integer",
    )
    registry.register(
        "f64",
        float,
        encode=_encode_f64,
        decode=_decode_f64,
        copy=_identity,
        description="64-bit float",
    )
    registry.register(
        "bool",
        bool,
        encode=_encode_bool,
        decode=_decode_bool,
        copy=_identity,
        description="Boolean",
    )
    registry.register(
        "bytes",
        bytes,
        encode=bytes,
        decode=_decode_bytes,
        copy=_identity,
        description="Raw bytes",
    )
    registry.register(
        "numpy.ndarray",
        np.ndarray,
        encode=_encode_ndarray,
        decode=_decode_ndarray,
        copy=_copy_ndarray,
        freeze=_freeze_ndarray,
        share=_identity,
        description="NumPy array (.npy, no pickled objects)",
    )
    registry.register(
        "polars.DataFrame",
        pl.DataFrame,
        encode=_encode_dataframe,
        decode=_decode_dataframe,
        copy=_copy_dataframe,
        freeze=_copy_dataframe,
        share=_copy_dataframe,
        description="Polars DataFrame (Arrow IPC)",
    )
