"""
Typed values.

A Value pairs a ValueType with its native Python payload:

    address -> checksum address str
    bool    -> bool
    uintN   -> int
    intN    -> int
    bytes   -> bytes
    string  -> str
    T[], T[N], (..) -> tuple of Value
"""

import json
from dataclasses import dataclass
from typing import Any

from eth_utils import to_checksum_address

from .types import (
    AddressType,
    ArrayType,
    BoolType,
    BytesType,
    IntType,
    StringType,
    TupleType,
    UIntType,
    ValueType,
)


@dataclass(frozen=True)
class Value:
    type: ValueType
    data: Any

    def render(self) -> str:
        return render(self)

    def to_abi(self) -> Any:
        return to_abi(self)

    def to_json(self) -> Any:
        return to_json(self)


def render(value: Value) -> str:
    """
    Canonical text for a value.

    Re-validating the rendered text of any primitive value against its type
    yields an equal value.
    """
    vtype = value.type
    if isinstance(vtype, BoolType):
        return "true" if value.data else "false"
    if isinstance(vtype, (UIntType, IntType)):
        return str(value.data)
    if isinstance(vtype, BytesType):
        return "0x" + bytes(value.data).hex()
    if isinstance(vtype, (AddressType, StringType)):
        return value.data
    if isinstance(vtype, ArrayType):
        return ",".join(_render_nested(item) for item in value.data)
    if isinstance(vtype, TupleType):
        return "(" + ",".join(_render_nested(item) for item in value.data) + ")"
    raise TypeError(f"Unknown value type: {vtype!r}")


def _render_nested(value: Value) -> str:
    if isinstance(value.type, ArrayType):
        return "[" + render(value) + "]"
    if isinstance(value.type, StringType) and _needs_quotes(value.data):
        return json.dumps(value.data)
    return render(value)


def _needs_quotes(text: str) -> bool:
    return text != text.strip() or any(ch in text for ch in ',\n"[]()')


def to_abi(value: Value) -> Any:
    """Convert to the native objects eth_abi expects for encoding."""
    vtype = value.type
    if isinstance(vtype, ArrayType):
        return [to_abi(item) for item in value.data]
    if isinstance(vtype, TupleType):
        return tuple(to_abi(item) for item in value.data)
    return value.data


def value_from_abi(value_type: ValueType, obj: Any) -> Value:
    """Wrap an object decoded by eth_abi into a Value of the given type."""
    if isinstance(value_type, AddressType):
        return Value(value_type, to_checksum_address(obj))
    if isinstance(value_type, BoolType):
        return Value(value_type, bool(obj))
    if isinstance(value_type, (UIntType, IntType)):
        return Value(value_type, int(obj))
    if isinstance(value_type, BytesType):
        return Value(value_type, bytes(obj))
    if isinstance(value_type, StringType):
        return Value(value_type, str(obj))
    if isinstance(value_type, ArrayType):
        return Value(value_type, tuple(value_from_abi(value_type.element, item) for item in obj))
    if isinstance(value_type, TupleType):
        return Value(value_type, tuple(
            value_from_abi(member.type, item)
            for member, item in zip(value_type.members, obj)
        ))
    raise TypeError(f"Unknown value type: {value_type!r}")


def to_json(value: Value) -> Any:
    """JSON-compatible representation (named tuples become objects)."""
    vtype = value.type
    if isinstance(vtype, BytesType):
        return "0x" + bytes(value.data).hex()
    if isinstance(vtype, ArrayType):
        return [to_json(item) for item in value.data]
    if isinstance(vtype, TupleType):
        names = [m.name for m in vtype.members]
        items = [to_json(item) for item in value.data]
        if all(names) and len(set(names)) == len(names):
            return dict(zip(names, items))
        return items
    return value.data
