"""Registry of storable value types and their serialization hooks."""

from __future__ import annotations

import copy as copy_module
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from importlib import metadata
from typing import Any, cast

from .errors import UnregisteredTypeError
from .utils import get_logger
from .values import Storable, register_builtin_value_types

logger = get_logger(__name__)

Encoder = Callable[[Any], bytes]
Decoder = Callable[[bytes], Any]
Hook = Callable[[Any], Any]


def _iter_entry_points(group: str) -> Iterator[metadata.EntryPoint]:
    eps = metadata.entry_points()
    if hasattr(eps, "select"):
        selected = eps.select(group=group)
        return iter(selected)

    if isinstance(eps, dict):
        legacy = eps.get(group, ())
    else:
        legacy = ()

    return iter(cast(Iterable[metadata.EntryPoint], legacy))


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True, slots=True)
class ValueTypeSpec:
    """Descriptor for a registered value type.

    Attributes:
        tag: Stable identifier written next to every encoded value
        py_type: Python type handled by this spec (subclasses match too)
        encode: Turns a value into its payload bytes
        decode: Rebuilds a value from payload bytes
        copy: Produces the private copy stored by ``Frame.set``
        freeze: Produces the read-only form kept once a frame is shared
        share: Produces the handle returned when a shared frame is read
        description: Optional human readable summary
    """

    tag: str
    py_type: type
    encode: Encoder
    decode: Decoder
    copy: Hook = copy_module.deepcopy
    freeze: Hook = _identity
    share: Hook = _identity
    description: str | None = None


class ValueTypeRegistry:
    """In-memory registry mapping type tags and Python types to value specs."""

    entry_point_group = "icetray.values"

    def __init__(self) -> None:
        self._by_tag: dict[str, ValueTypeSpec] = {}
        self._by_type: dict[type, ValueTypeSpec] = {}

    def register(
        self,
        tag: str,
        py_type: type,
        *,
        encode: Encoder,
        decode: Decoder,
        copy: Hook | None = None,
        freeze: Hook | None = None,
        share: Hook | None = None,
        description: str | None = None,
    ) -> ValueTypeSpec:
        """
        Register *py_type* under *tag* and return the spec.

        *copy* defaults to ``copy.deepcopy`` and also serves as *share* when
        that is omitted, so a value read from a shared frame can never be
        changed in place. *freeze* defaults to the identity.
        """
        if not tag:
            raise ValueError("Value type tag must be a non-empty string")
        if tag in self._by_tag:
            raise ValueError(f"Value type tag already registered: {tag}")
        if py_type in self._by_type:
            raise ValueError(
                f"Python type already registered: {py_type.__qualname__} "
                f"(tag {self._by_type[py_type].tag!r})"
            )

        spec = ValueTypeSpec(
            tag=tag,
            py_type=py_type,
            encode=encode,
            decode=decode,
            copy=copy or copy_module.deepcopy,
            freeze=freeze or _identity,
            share=share or copy or copy_module.deepcopy,
            description=description,
        )
        self._by_tag[tag] = spec
        self._by_type[py_type] = spec
        logger.debug("Registered value type %s for %s", tag, py_type.__qualname__)
        return spec

    def decorator(
        self,
        tag: str,
        *,
        description: str | None = None,
    ) -> Callable[[type[Storable]], type[Storable]]:
        """Decorator for registering a Storable subclass."""

        def wrapper(value_cls: type[Storable]) -> type[Storable]:
            if not isinstance(value_cls, type) or not issubclass(value_cls, Storable):
                raise TypeError("Only Storable subclasses can be registered")
            # A class with its own freeze() promises an immutable frozen form
            freezes_itself = value_cls.freeze is not Storable.freeze
            self.register(
                tag,
                value_cls,
                encode=_encode_storable,
                decode=value_cls.decode,
                freeze=_freeze_storable,
                share=_identity if freezes_itself else None,
                description=description or _first_doc_line(value_cls),
            )
            return value_cls

        return wrapper

    def load_entry_points(self) -> None:
        """Discover and register external value types via Python entry points."""

        for ep in _iter_entry_points(self.entry_point_group):
            try:
                loader = ep.load()
            except Exception as exc:  # pragma: no cover - defensive logging path
                logger.error("Failed to load value type entry point %s: %s", ep.name, exc)
                continue

            if callable(loader):
                loader(self)
            else:  # pragma: no cover - defensive logging path
                logger.warning(
                    "Value type entry point %s did not return a callable; skipping", ep.name
                )

    def get(self, tag: str) -> ValueTypeSpec:
        """Return the spec registered under *tag* or raise KeyError."""
        return self._by_tag[tag]

    def spec_for(self, value: Any) -> ValueTypeSpec:
        """Return the spec handling *value*, preferring the most specific type."""
        value_type = type(value)
        for candidate in value_type.__mro__:
            spec = self._by_type.get(candidate)
            if spec is not None:
                return spec
        raise UnregisteredTypeError(value_type)

    def list(self) -> list[ValueTypeSpec]:
        """Return registered specs in registration order."""
        return list(self._by_tag.values())

    def __contains__(self, tag: object) -> bool:
        return tag in self._by_tag

    def __len__(self) -> int:
        return len(self._by_tag)

    def __repr__(self) -> str:
        return f"ValueTypeRegistry({', '.join(self._by_tag)})"


def _encode_storable(value: Storable) -> bytes:
    return value.encode()


def _freeze_storable(value: Storable) -> Storable:
    return value.freeze()


def _first_doc_line(obj: object) -> str | None:
    doc = getattr(obj, "__doc__", None)
    if not doc:
        return None
    return doc.strip().splitlines()[0]


# --------------------------------------------------------------------------- #
# Process-wide registry (lazily populated on first access)
# --------------------------------------------------------------------------- #
_default_registry: ValueTypeRegistry | None = None


def default_registry() -> ValueTypeRegistry:
    """Return the global value type registry, loading built-ins on first call."""
    global _default_registry
    if _default_registry is None:
        registry = ValueTypeRegistry()
        register_builtin_value_types(registry)
        registry.load_entry_points()
        _default_registry = registry
    return _default_registry
