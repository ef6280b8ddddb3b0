"""Binary encoding of a frame's local contents.

Each record is self-terminating, so records can be concatenated without any
outer container. All integers are unsigned 64-bit little-endian::

    u64 entry_count
    entry_count x (u64 key_len, key, u64 tag_len, tag, u64 payload_len, payload)

Keys and tags are UTF-8. Entries are written in sorted key order. The payload
is whatever the value type registered under ``tag`` produces. Ancestors are
never written.
"""

from __future__ import annotations

import io
import struct
from typing import IO, TYPE_CHECKING, NoReturn

from .errors import FrameDecodeError, FrameEncodeError, UnregisteredTypeError
from .frame import Frame
from .utils import get_logger

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from .registry import ValueTypeRegistry

logger = get_logger(__name__)

_U64 = struct.Struct("<Q")
_CHUNK_SIZE = 1 << 20


def encode_frame(frame: Frame) -> bytes:
    """
    Encode the local contents of *frame* into one record.

    Args:
        frame: Frame to encode

    Returns:
        The encoded record

    Raises:
        FrameEncodeError: If a value type fails to encode its value
    """
    chunks = [_U64.pack(len(frame))]
    for key, value in sorted(frame.items(), key=lambda item: item[0]):
        spec = frame.registry.spec_for(value)
        try:
            payload = spec.encode(value)
        except Exception as exc:
            raise FrameEncodeError(
                f'Cannot encode key "{key}" as {spec.tag}: {exc}'
            ) from exc
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise FrameEncodeError(
                f'Value type {spec.tag} returned {type(payload).__name__} for key "{key}", '
                "expected bytes"
            )
        for part in (key.encode("utf-8"), spec.tag.encode("utf-8"), bytes(payload)):
            chunks.append(_U64.pack(len(part)))
            chunks.append(part)
    return b"".join(chunks)


def write_frame(frame: Frame, destination: IO[bytes]) -> None:
    """Encode *frame* and write the record to *destination*."""
    destination.write(encode_frame(frame))


def read_frame(
    source: IO[bytes],
    *,
    registry: ValueTypeRegistry | None = None,
) -> Frame | None:
    """
    Decode one frame from the current position of *source*.

    Args:
        source: Binary stream positioned at a record boundary
        registry: Registry used to resolve type tags (process-wide default
            when omitted)

    Returns:
        The decoded frame, or ``None`` if the stream ended exactly at the
        record boundary

    Raises:
        FrameDecodeError: If the record is truncated or malformed
        OSError: If the underlying stream fails
    """
    head = source.read(_U64.size)
    if not head:
        return None
    reader = _RecordReader(source, consumed=len(head))
    if len(head) < _U64.size:
        head += reader.read_exact(_U64.size - len(head), "entry count")
    (count,) = _U64.unpack(head)
    return _decode_entries(reader, count, registry)


def decode_frame(data: bytes, *, registry: ValueTypeRegistry | None = None) -> Frame:
    """
    Decode exactly one record from *data*.

    Raises:
        FrameDecodeError: If *data* is empty, malformed, or has trailing bytes
    """
    stream = io.BytesIO(data)
    frame = read_frame(stream, registry=registry)
    if frame is None:
        raise FrameDecodeError("Cannot decode a frame from empty data")
    trailing = len(data) - stream.tell()
    if trailing:
        raise FrameDecodeError(f"{trailing} trailing bytes after frame record")
    return frame


def _decode_entries(
    reader: _RecordReader,
    count: int,
    registry: ValueTypeRegistry | None,
) -> Frame:
    frame = Frame(registry=registry)
    registry = frame.registry
    for index in range(count):
        key = reader.read_text(f"key of entry {index}")
        tag = reader.read_text(f'type tag of key "{key}"')
        payload = reader.read_block(f'payload of key "{key}"')

        if key in frame.keys():
            raise FrameDecodeError(f'Duplicate key "{key}" in frame record')
        if tag not in registry:
            raise FrameDecodeError(f'Unknown type tag "{tag}" for key "{key}"')

        spec = registry.get(tag)
        try:
            value = spec.decode(payload)
        except Exception as exc:
            raise FrameDecodeError(
                f'Invalid {tag} payload for key "{key}": {exc}'
            ) from exc
        try:
            decoded_spec = registry.spec_for(value)
        except UnregisteredTypeError:
            decoded_spec = None
        if decoded_spec is not spec:
            raise FrameDecodeError(
                f'Value type {tag} decoded key "{key}" as {type(value).__name__}, '
                f"expected {spec.py_type.__name__}"
            )
        frame.set(key, value)

    logger.debug("Decoded frame with %s keys (%s bytes)", count, reader.consumed)
    return frame


class _RecordReader:
    """Reads length-prefixed blocks and reports truncation precisely."""

    def __init__(self, source: IO[bytes], consumed: int = 0) -> None:
        self.source = source
        self.consumed = consumed

    def read_exact(self, size: int, what: str) -> bytes:
        # Read in bounded chunks: a corrupt length must not trigger one huge allocation
        chunks: list[bytes] = []
        remaining = size
        while remaining:
            chunk = self.source.read(min(remaining, _CHUNK_SIZE))
            if not chunk:
                got = size - remaining
                self.consumed += got
                self.truncated(what, size, got)
            chunks.append(chunk)
            remaining -= len(chunk)
        self.consumed += size
        return b"".join(chunks)

    def read_block(self, what: str) -> bytes:
        (length,) = _U64.unpack(self.read_exact(_U64.size, f"length of {what}"))
        return self.read_exact(length, what)

    def read_text(self, what: str) -> str:
        raw = self.read_block(what)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrameDecodeError(f"Invalid UTF-8 in {what}") from exc

    def truncated(self, what: str, expected: int, got: int) -> NoReturn:
        raise FrameDecodeError(
            f"Truncated frame record: expected {expected} bytes for {what}, "
            f"got {got} (after {self.consumed} bytes)"
        )
