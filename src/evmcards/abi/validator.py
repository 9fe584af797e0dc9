"""
Field Validator

Turns the free-form text of one form field into a typed Value. Validation is
pure: the same (type, text) pair always produces the same Value or the same
error, so fields can be re-validated on every keystroke.
"""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import List, Union

from eth_utils import to_checksum_address

from evmcards.utils.exceptions import (
    ArityMismatchError,
    MalformedAddressError,
    MalformedBoolError,
    MalformedBytesError,
    NotANumberError,
    OutOfRangeError,
    ValidationError,
)
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
from .values import Value

ADDRESS_RE = re.compile(r"^0[xX][0-9a-fA-F]{40}$")
BYTES_RE = re.compile(r"^0[xX](?:[0-9a-fA-F]{2})*$")
INTEGER_RE = re.compile(r"^[+-]?\d+$")

ETHER_DECIMALS = 18
MAX_WEI = 2 ** 256 - 1
# 2**256 - 1 wei is about 1.16e59 ether
MAX_AMOUNT_EXPONENT = 59

TRUE_LITERALS = ("true", "1", "yes")
FALSE_LITERALS = ("false", "0", "no")

OPENERS = {"[": "]", "(": ")"}
CLOSERS = {"]", ")"}


def validate(value_type: ValueType, text: str) -> Value:
    """
    Validate text against a value type.

    Args:
        value_type: Target type
        text: Raw field text

    Returns:
        The parsed Value

    Raises:
        ValidationError: One of MalformedAddressError, MalformedBoolError,
            NotANumberError, OutOfRangeError, MalformedBytesError or
            ArityMismatchError
    """
    if isinstance(value_type, AddressType):
        return _validate_address(value_type, text)
    if isinstance(value_type, BoolType):
        return _validate_bool(value_type, text)
    if isinstance(value_type, (UIntType, IntType)):
        return _validate_integer(value_type, text)
    if isinstance(value_type, BytesType):
        return _validate_bytes(value_type, text)
    if isinstance(value_type, StringType):
        return Value(value_type, text)
    if isinstance(value_type, ArrayType):
        return _validate_array(value_type, text)
    if isinstance(value_type, TupleType):
        return _validate_tuple(value_type, text)
    raise TypeError(f"Unknown value type: {value_type!r}")


def validate_or_error(value_type: ValueType, text: str) -> Union[Value, ValidationError]:
    """Like validate(), but returns the error instead of raising it."""
    try:
        return validate(value_type, text)
    except ValidationError as e:
        return e


def validate_amount(text: str) -> Decimal:
    """
    Validate a native-asset amount (e.g. "0.5" ether).

    The amount must convert to a whole number of wei that fits in a uint256,
    so an accepted amount is always sent exactly as typed.
    """
    stripped = text.strip()
    try:
        amount = Decimal(stripped)
    except InvalidOperation:
        raise NotANumberError(f"'{stripped}' is not a decimal number")
    if not amount.is_finite():
        raise NotANumberError(f"'{stripped}' is not a decimal number")
    if amount < 0:
        raise OutOfRangeError("Amount must not be negative")
    amount_to_wei(amount)
    return amount


def amount_to_wei(amount: Decimal) -> int:
    """
    Exact conversion of an ether amount to wei.

    Raises:
        OutOfRangeError: below 1 wei precision, negative, or above 2**256-1 wei
    """
    if amount < 0:
        raise OutOfRangeError("Amount must not be negative")
    if amount == 0:
        return 0
    if amount.adjusted() > MAX_AMOUNT_EXPONENT:
        raise OutOfRangeError(f"{amount} ether is more than 2**256-1 wei")

    # Integer arithmetic on the digits; Decimal arithmetic would round to 28 places
    _, digits, exponent = amount.as_tuple()
    while len(digits) > 1 and digits[-1] == 0:
        digits = digits[:-1]
        exponent += 1
    if exponent < -ETHER_DECIMALS:
        raise OutOfRangeError(f"Amounts are limited to {ETHER_DECIMALS} decimal places (1 wei)")

    coefficient = int("".join(str(d) for d in digits))
    wei = coefficient * 10 ** (exponent + ETHER_DECIMALS)
    if wei > MAX_WEI:
        raise OutOfRangeError(f"{amount} ether is more than 2**256-1 wei")
    return wei


def _validate_address(value_type: AddressType, text: str) -> Value:
    stripped = text.strip()
    if not ADDRESS_RE.match(stripped):
        raise MalformedAddressError("Expected 0x followed by 40 hex characters")
    return Value(value_type, to_checksum_address("0x" + stripped[2:]))


def _validate_bool(value_type: BoolType, text: str) -> Value:
    literal = text.strip().lower()
    if literal in TRUE_LITERALS:
        return Value(value_type, True)
    if literal in FALSE_LITERALS:
        return Value(value_type, False)
    raise MalformedBoolError("Expected true or false")


def _validate_integer(value_type: Union[UIntType, IntType], text: str) -> Value:
    stripped = text.strip()
    if not INTEGER_RE.match(stripped):
        raise NotANumberError(f"'{stripped}' is not a base-10 integer")
    sign = -1 if stripped.startswith("-") else 1
    significant = stripped.lstrip("+-").lstrip("0") or "0"
    # Also keeps int() clear of the interpreter's digit limit for pasted text
    max_digits = len(str(max(value_type.max_value, -value_type.min_value)))
    if len(significant) > max_digits:
        raise OutOfRangeError(
            f"{len(significant)}-digit number is out of range for {value_type.canonical()} "
            f"[{value_type.min_value}, {value_type.max_value}]"
        )
    number = sign * int(significant, 10)
    if not value_type.min_value <= number <= value_type.max_value:
        raise OutOfRangeError(
            f"{number} is out of range for {value_type.canonical()} "
            f"[{value_type.min_value}, {value_type.max_value}]"
        )
    return Value(value_type, number)


def _validate_bytes(value_type: BytesType, text: str) -> Value:
    stripped = text.strip()
    if not BYTES_RE.match(stripped):
        raise MalformedBytesError("Expected 0x followed by an even number of hex characters")
    data = bytes.fromhex(stripped[2:])
    if value_type.length is not None and len(data) != value_type.length:
        raise MalformedBytesError(
            f"Expected exactly {value_type.length} bytes, got {len(data)}"
        )
    return Value(value_type, data)


def _validate_array(value_type: ArrayType, text: str) -> Value:
    segments = split_elements(_strip_enclosing(text.strip(), "[", "]"))
    if value_type.length is not None and len(segments) != value_type.length:
        raise ArityMismatchError(
            f"Expected {value_type.length} elements, got {len(segments)}"
        )
    items = []
    for i, segment in enumerate(segments):
        try:
            items.append(_validate_element(value_type.element, segment))
        except ValidationError as e:
            raise e.at_index(i) from None
    return Value(value_type, tuple(items))


def _validate_tuple(value_type: TupleType, text: str) -> Value:
    stripped = text.strip()
    inner = _strip_enclosing(stripped, "(", ")")
    if inner == stripped:
        raise ArityMismatchError("Expected a tuple literal in parentheses")
    segments = split_elements(inner)
    if len(segments) != len(value_type.members):
        raise ArityMismatchError(
            f"Expected {len(value_type.members)} tuple members, got {len(segments)}"
        )
    items = []
    for i, (member, segment) in enumerate(zip(value_type.members, segments)):
        try:
            items.append(_validate_element(member.type, segment))
        except ValidationError as e:
            raise e.at_index(i) from None
    return Value(value_type, tuple(items))


def _validate_element(value_type: ValueType, segment: str) -> Value:
    if isinstance(value_type, StringType):
        return Value(value_type, _unquote(segment))
    return validate(value_type, segment)


def _unquote(segment: str) -> str:
    if len(segment) >= 2 and segment.startswith('"') and segment.endswith('"'):
        try:
            return json.loads(segment)
        except ValueError:
            return segment
    return segment


def _strip_enclosing(text: str, opener: str, closer: str) -> str:
    """Remove one pair of brackets if they enclose the whole text."""
    if not (text.startswith(opener) and text.endswith(closer)):
        return text
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
            if depth == 0 and i != len(text) - 1:
                return text
    return text[1:-1]


def split_elements(text: str) -> List[str]:
    """
    Split array text on commas and newlines that are not nested.

    Brackets, parentheses and double-quoted strings group their content, so
    ``[1,2],[3]`` is two elements and ``"a,b",c`` is two strings. Empty text
    is an empty list.
    """
    if not text.strip():
        return []
    segments = []
    current = []
    depth = 0
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in OPENERS:
            depth += 1
        elif ch in CLOSERS and depth > 0:
            depth -= 1
        elif ch in ",\n" and depth == 0:
            segments.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    segments.append("".join(current).strip())
    return segments
