"""
Value Type Model

The closed set of ABI value types that can be entered through a parameter
form or decoded from a call result. Types are immutable trees: arrays and
tuples hold their children directly, so nested tuples/arrays need no
special handling beyond recursion.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from evmcards.utils.exceptions import InvalidTypeError

VALID_INT_BITS = frozenset(range(8, 257, 8))
MAX_FIXED_BYTES = 32


@dataclass(frozen=True)
class AddressType:
    def canonical(self) -> str:
        return "address"


@dataclass(frozen=True)
class BoolType:
    def canonical(self) -> str:
        return "bool"


@dataclass(frozen=True)
class UIntType:
    bits: int = 256

    def __post_init__(self):
        if self.bits not in VALID_INT_BITS:
            raise InvalidTypeError(f"Invalid uint size: {self.bits}", type_string=f"uint{self.bits}")

    def canonical(self) -> str:
        return f"uint{self.bits}"

    @property
    def min_value(self) -> int:
        return 0

    @property
    def max_value(self) -> int:
        return 2 ** self.bits - 1


@dataclass(frozen=True)
class IntType:
    bits: int = 256

    def __post_init__(self):
        if self.bits not in VALID_INT_BITS:
            raise InvalidTypeError(f"Invalid int size: {self.bits}", type_string=f"int{self.bits}")

    def canonical(self) -> str:
        return f"int{self.bits}"

    @property
    def min_value(self) -> int:
        return -(2 ** (self.bits - 1))

    @property
    def max_value(self) -> int:
        return 2 ** (self.bits - 1) - 1


@dataclass(frozen=True)
class BytesType:
    """`bytes` when length is None, `bytesN` otherwise."""
    length: Optional[int] = None

    def __post_init__(self):
        if self.length is not None and not 1 <= self.length <= MAX_FIXED_BYTES:
            raise InvalidTypeError(f"Invalid fixed bytes length: {self.length}", type_string=f"bytes{self.length}")

    def canonical(self) -> str:
        return "bytes" if self.length is None else f"bytes{self.length}"


@dataclass(frozen=True)
class StringType:
    def canonical(self) -> str:
        return "string"


@dataclass(frozen=True)
class ArrayType:
    """`T[]` when length is None, `T[N]` otherwise."""
    element: "ValueType"
    length: Optional[int] = None

    def __post_init__(self):
        if self.length is not None and self.length < 1:
            raise InvalidTypeError(f"Invalid fixed array length: {self.length}")

    def canonical(self) -> str:
        suffix = "" if self.length is None else str(self.length)
        return f"{self.element.canonical()}[{suffix}]"


@dataclass(frozen=True)
class TupleMember:
    name: str
    type: "ValueType"


@dataclass(frozen=True)
class TupleType:
    members: Tuple[TupleMember, ...]

    def canonical(self) -> str:
        return "(" + ",".join(m.type.canonical() for m in self.members) + ")"


ValueType = Union[AddressType, BoolType, UIntType, IntType, BytesType,
                  StringType, ArrayType, TupleType]

PRIMITIVE_TYPES = (AddressType, BoolType, UIntType, IntType, BytesType, StringType)


def is_primitive(value_type: ValueType) -> bool:
    return isinstance(value_type, PRIMITIVE_TYPES)


def is_dynamic(value_type: ValueType) -> bool:
    """True if the ABI encoding of the type has no fixed size."""
    if isinstance(value_type, StringType):
        return True
    if isinstance(value_type, BytesType):
        return value_type.length is None
    if isinstance(value_type, ArrayType):
        return value_type.length is None or is_dynamic(value_type.element)
    if isinstance(value_type, TupleType):
        return any(is_dynamic(m.type) for m in value_type.members)
    return False


# ============================================================================
# Parsing type strings
# ============================================================================

_ARRAY_SUFFIX = re.compile(r"\[(\d*)\]$")
_ELEMENTARY = re.compile(r"^(address|bool|string|bytes|uint|int)(\d*)$")


def split_top_level(inner: str) -> list:
    """Split a tuple body on commas that are not nested in parentheses."""
    parts = []
    depth = 0
    current = []
    for ch in inner:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise InvalidTypeError("Unbalanced parentheses", type_string=inner)
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    if depth != 0:
        raise InvalidTypeError("Unbalanced parentheses", type_string=inner)
    parts.append("".join(current))
    return parts


def parse_type(type_string: str) -> ValueType:
    """
    Parse a canonical ABI type string.

    Accepts elementary types (``uint`` and ``int`` alias 256 bits), tuple
    expressions such as ``(address,uint256)`` and any number of array
    suffixes, e.g. ``(uint8,bytes32)[2][]``.

    Raises:
        InvalidTypeError: If the string is not a supported type
    """
    text = type_string.strip().replace(" ", "")
    if not text:
        raise InvalidTypeError("Empty type", type_string=type_string)

    match = _ARRAY_SUFFIX.search(text)
    if match:
        element = parse_type(text[:match.start()])
        length = int(match.group(1)) if match.group(1) else None
        return ArrayType(element, length)

    if text.startswith("(") and text.endswith(")"):
        body = text[1:-1]
        if not body:
            return TupleType(())
        members = tuple(
            TupleMember(name="", type=parse_type(part))
            for part in split_top_level(body)
        )
        return TupleType(members)

    if text.startswith("tuple"):
        raise InvalidTypeError("Tuple types need their components", type_string=type_string)

    elementary = _ELEMENTARY.match(text)
    if not elementary:
        raise InvalidTypeError(f"Unsupported type: {type_string}", type_string=type_string)

    base, size = elementary.groups()
    if base in ("address", "bool", "string") and size:
        raise InvalidTypeError(f"Unsupported type: {type_string}", type_string=type_string)
    if base == "address":
        return AddressType()
    if base == "bool":
        return BoolType()
    if base == "string":
        return StringType()
    if base == "bytes":
        return BytesType(int(size) if size else None)
    bits = int(size) if size else 256
    return UIntType(bits) if base == "uint" else IntType(bits)


def from_abi_param(param: Dict[str, Any]) -> ValueType:
    """
    Build a value type from a JSON ABI parameter.

    Handles ``tuple`` types (including arrays of tuples) through their
    ``components`` list, keeping component names.
    """
    abi_type = param.get("type", "")
    if abi_type.startswith("tuple"):
        components = param.get("components") or []
        members = tuple(
            TupleMember(name=comp.get("name", ""), type=from_abi_param(comp))
            for comp in components
        )
        result: ValueType = TupleType(members)
        suffix = abi_type[len("tuple"):]
        for dim in re.findall(r"\[(\d*)\]", suffix):
            result = ArrayType(result, int(dim) if dim else None)
        return result
    return parse_type(abi_type)


def format_abi_type(param: Dict[str, Any]) -> str:
    """Format a JSON ABI parameter as its canonical type string."""
    return from_abi_param(param).canonical()
