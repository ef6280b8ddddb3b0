"""Tests for the value type registry and built-in value types."""

from __future__ import annotations

import struct

import numpy as np
import polars as pl
import pytest

from icetray.core.errors import UnregisteredTypeError
from icetray.core.frame import Frame
from icetray.core.registry import ValueTypeRegistry, default_registry
from icetray.core.values import Storable, UInt8, register_builtin_value_types


class Position(Storable):
    """A point in detector coordinates."""

    def __init__(self, x: float, y: float, z: float) -> None:
        self.x = x
        self.y = y
        self.z = z

    def encode(self) -> bytes:
        return struct.pack("<3d", self.x, self.y, self.z)

    @classmethod
    def decode(cls, payload: bytes) -> Position:
        return cls(*struct.unpack("<3d", payload))


@pytest.fixture()
def fresh_registry() -> ValueTypeRegistry:
    registry = ValueTypeRegistry()
    register_builtin_value_types(registry)
    return registry


def test_builtin_tags_are_registered(fresh_registry: ValueTypeRegistry) -> None:
    tags = {spec.tag for spec in fresh_registry.list()}
    assert {"str", "u8", "i64", "f64", "bool", "bytes"} <= tags
    assert "numpy.ndarray" in fresh_registry
    assert "polars.DataFrame" in fresh_registry


def test_spec_for_prefers_most_specific_type(fresh_registry: ValueTypeRegistry) -> None:
    assert fresh_registry.spec_for(UInt8(1)).tag == "u8"
    assert fresh_registry.spec_for(True).tag == "bool"
    assert fresh_registry.spec_for(1).tag == "i64"
    assert fresh_registry.spec_for(np.float64(1.0)).tag == "f64"
    assert fresh_registry.spec_for(np.zeros(2)).tag == "numpy.ndarray"
    assert fresh_registry.spec_for(pl.DataFrame({"a": [1]})).tag == "polars.DataFrame"


def test_spec_for_unregistered_type(fresh_registry: ValueTypeRegistry) -> None:
    with pytest.raises(UnregisteredTypeError):
        fresh_registry.spec_for({"a": 1})


def test_register_rejects_duplicate_tag(fresh_registry: ValueTypeRegistry) -> None:
    with pytest.raises(ValueError, match="tag already registered"):
        fresh_registry.register("str", Position, encode=bytes, decode=bytes)


def test_register_rejects_duplicate_type(fresh_registry: ValueTypeRegistry) -> None:
    with pytest.raises(ValueError, match="Python type already registered"):
        fresh_registry.register("text", str, encode=str.encode, decode=bytes.decode)


def test_register_rejects_empty_tag() -> None:
    with pytest.raises(ValueError):
        ValueTypeRegistry().register("", str, encode=str.encode, decode=bytes.decode)


def test_decorator_registers_storable(fresh_registry: ValueTypeRegistry) -> None:
    fresh_registry.decorator("position")(Position)

    spec = fresh_registry.get("position")
    assert spec.py_type is Position
    assert spec.description == "A point in detector coordinates."

    frame = Frame(registry=fresh_registry)
    frame.set("vertex", Position(1.0, 2.0, -3.0))
    decoded = Frame.from_bytes(frame.to_bytes(), registry=fresh_registry)
    vertex = decoded.get("vertex", Position)
    assert (vertex.x, vertex.y, vertex.z) == (1.0, 2.0, -3.0)


def test_storable_from_ancestor_cannot_change_it(fresh_registry: ValueTypeRegistry) -> None:
    fresh_registry.decorator("position")(Position)
    ancestor = Frame(registry=fresh_registry)
    ancestor.set("vertex", Position(1.0, 2.0, 3.0))
    early = ancestor.get("vertex", Position)
    child = Frame(ancestor)

    child.get("vertex", Position).x = 100.0
    early.y = 200.0
    vertex = ancestor.get("vertex", Position)
    assert (vertex.x, vertex.y, vertex.z) == (1.0, 2.0, 3.0)


def test_storable_with_own_freeze_is_shared_without_copies(
    fresh_registry: ValueTypeRegistry,
) -> None:
    class Charge(Storable):
        """A charge that can be locked."""

        def __init__(self, value: float, locked: bool = False) -> None:
            self.value = value
            self.locked = locked

        def encode(self) -> bytes:
            return struct.pack("<d", self.value)

        @classmethod
        def decode(cls, payload: bytes) -> Charge:
            return cls(*struct.unpack("<d", payload))

        def freeze(self) -> Charge:
            return Charge(self.value, locked=True)

    fresh_registry.decorator("charge")(Charge)
    ancestor = Frame(registry=fresh_registry)
    ancestor.set("q", Charge(1.5))
    child = Frame(ancestor)

    first = child.get("q", Charge)
    assert first.locked
    assert child.get("q") is first


def test_decorator_rejects_non_storable(fresh_registry: ValueTypeRegistry) -> None:
    class NotStorable:
        pass

    with pytest.raises(TypeError):
        fresh_registry.decorator("nope")(NotStorable)  # type: ignore[arg-type]


def test_get_unknown_tag_raises_key_error(fresh_registry: ValueTypeRegistry) -> None:
    with pytest.raises(KeyError):
        fresh_registry.get("missing")


def test_custom_registry_is_inherited_by_children(fresh_registry: ValueTypeRegistry) -> None:
    fresh_registry.decorator("position")(Position)
    parent = Frame(registry=fresh_registry)
    child = Frame(parent)
    child.set("vertex", Position(0.0, 0.0, 0.0))
    assert child.registry is fresh_registry

    with pytest.raises(UnregisteredTypeError):
        Frame().set("vertex", Position(0.0, 0.0, 0.0))


def test_default_registry_is_shared() -> None:
    assert default_registry() is default_registry()
    assert Frame().registry is default_registry()


def test_uint8_range() -> None:
    assert UInt8(255) == 255
    assert repr(UInt8(3)) == "UInt8(3)"
    with pytest.raises(ValueError):
        UInt8(256)
    with pytest.raises(ValueError):
        UInt8(-1)
