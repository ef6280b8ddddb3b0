"""Frame: the keyed container that flows through a Tray."""

from __future__ import annotations

from collections.abc import ItemsView, KeysView
from typing import IO, TYPE_CHECKING, Any, TypeVar, overload

from .errors import FrozenFrameError, KeyNotFoundError, TypeMismatchError
from .utils import get_logger

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from .registry import ValueTypeRegistry

logger = get_logger(__name__)

T = TypeVar("T")


class Frame:
    """
    A bag of holding for event data.

    The interface is similar to a mapping with string keys, but every value
    must have a registered value type so the frame can always be serialized.

    Frames can be stacked: a frame created with an *ancestor* falls back to
    the ancestor (and its ancestors) when a key is missing locally. The
    ancestor is read-only from then on. It is frozen when bound, so several
    frames, even on different threads, can share common data without copies
    or locks.

    Attributes:
        ancestor: The read-only frame consulted on a local miss, if any
        registry: Value type registry used for copies and serialization
    """

    def __init__(
        self,
        ancestor: Frame | None = None,
        *,
        registry: ValueTypeRegistry | None = None,
    ) -> None:
        """
        Initialize an empty Frame.

        Args:
            ancestor: Optional frame to share read-only; it is frozen here
            registry: Value type registry (defaults to the ancestor's, then
                the process-wide one)
        """
        if ancestor is not None and not isinstance(ancestor, Frame):
            raise TypeError(f"ancestor must be a Frame, not {type(ancestor).__name__}")

        if registry is None:
            if ancestor is not None:
                registry = ancestor.registry
            else:
                from .registry import default_registry  # Local import to avoid circular reference

                registry = default_registry()

        self._data: dict[str, Any] = {}
        self._frozen = False
        self.registry = registry
        self.ancestor = ancestor.freeze() if ancestor is not None else None

    @classmethod
    def new_with_ancestor(cls, ancestor: Frame) -> Frame:
        """Create an empty frame that shares *ancestor* read-only."""
        return cls(ancestor)

    @property
    def frozen(self) -> bool:
        """Whether this frame has been shared and can no longer change."""
        return self._frozen

    def freeze(self) -> Frame:
        """
        Make this frame immutable and return it.

        Mutable values are swapped for their frozen form (for example NumPy
        arrays become non-writeable copies, detached from any handle taken
        earlier). Freezing twice is a no-op.
        """
        if self._frozen:
            return self
        for key, value in self._data.items():
            self._data[key] = self.registry.spec_for(value).freeze(value)
        self._frozen = True
        logger.debug("Froze frame with %s keys", len(self._data))
        return self

    @overload
    def get(self, key: str) -> Any: ...

    @overload
    def get(self, key: str, kind: type[T]) -> T: ...

    def get(self, key: str, kind: Any = None) -> Any:
        """
        Look up *key* here, then in the ancestor chain.

        Args:
            key: The key to look up
            kind: Expected type (anything ``isinstance`` accepts); ``None``
                skips the check

        Returns:
            The stored value. Values held by a frozen frame come back in a
            form that cannot change the stored one (read-only arrays,
            cloned data frames).

        Raises:
            KeyNotFoundError: If the key is missing from this frame and every
                ancestor
            TypeMismatchError: If the first match is not an instance of *kind*
        """
        frame: Frame | None = self
        while frame is not None:
            if key in frame._data:
                value = _checked(key, frame._data[key], kind)
                if frame._frozen:
                    value = frame.registry.spec_for(value).share(value)
                return value
            frame = frame.ancestor

        if self.ancestor is None:
            raise KeyNotFoundError(key)
        raise KeyNotFoundError(key, f'No key "{key}" in frame or ancestors')

    @overload
    def get_mut(self, key: str) -> Any: ...

    @overload
    def get_mut(self, key: str, kind: type[T]) -> T: ...

    def get_mut(self, key: str, kind: Any = None) -> Any:
        """
        Look up *key* in local storage only and return the stored object.

        Mutable values (arrays, data frames, user types) can be modified in
        place through the returned object. The ancestor is never consulted.

        Raises:
            KeyNotFoundError: If the key is not stored locally
            TypeMismatchError: If the value is not an instance of *kind*
            FrozenFrameError: If this frame has been shared as an ancestor
        """
        self._ensure_mutable(key)
        if key not in self._data:
            raise KeyNotFoundError(key)
        return _checked(key, self._data[key], kind)

    def set(self, key: str, value: Any) -> None:
        """
        Store a copy of *value* at *key* in local storage.

        Raises:
            UnregisteredTypeError: If no value type handles ``type(value)``
            FrozenFrameError: If this frame has been shared as an ancestor
        """
        if not isinstance(key, str):
            raise TypeError(f"Frame keys must be str, not {type(key).__name__}")
        self._ensure_mutable(key)
        spec = self.registry.spec_for(value)
        self._data[key] = spec.copy(value)

    def keys(self) -> KeysView[str]:
        """Return the locally stored keys."""
        return self._data.keys()

    def items(self) -> ItemsView[str, Any]:
        """Return the locally stored key/value pairs."""
        return self._data.items()

    def write_to_stream(self, destination: IO[bytes]) -> None:
        """Encode the local contents of this frame into *destination*."""
        from .codec import write_frame

        write_frame(self, destination)

    @classmethod
    def read_from_stream(
        cls,
        source: IO[bytes],
        *,
        registry: ValueTypeRegistry | None = None,
    ) -> Frame | None:
        """Decode one frame from *source*, or return ``None`` at a clean end."""
        from .codec import read_frame

        return read_frame(source, registry=registry)

    def to_bytes(self) -> bytes:
        """Return the encoded record for this frame's local contents."""
        from .codec import encode_frame

        return encode_frame(self)

    @classmethod
    def from_bytes(cls, data: bytes, *, registry: ValueTypeRegistry | None = None) -> Frame:
        """Decode a frame from exactly one encoded record."""
        from .codec import decode_frame

        return decode_frame(data, registry=registry)

    def _ensure_mutable(self, key: str) -> None:
        if self._frozen:
            logger.error("Attempted to mutate key '%s' of a shared frame", key)
            raise FrozenFrameError(f'Cannot modify key "{key}": frame is shared as an ancestor')

    def __contains__(self, key: object) -> bool:
        frame: Frame | None = self
        while frame is not None:
            if key in frame._data:
                return True
            frame = frame.ancestor
        return False

    def __len__(self) -> int:
        """Return the number of locally stored keys."""
        return len(self._data)

    def __repr__(self) -> str:
        """String representation of the Frame."""
        keys = ", ".join(sorted(self._data))
        parts = [f"keys=[{keys}]"]
        if self.ancestor is not None:
            parts.append(f"ancestor_keys={len(self.ancestor)}")
        if self._frozen:
            parts.append("frozen")
        return f"Frame({', '.join(parts)})"


def _checked(key: str, value: Any, kind: Any) -> Any:
    if kind is not None and not isinstance(value, kind):
        raise TypeMismatchError(key, kind, type(value))
    return value
