"""
Form fields and parameter flattening.

Tuples are never edited as a single text field: every member becomes its own
field labeled ``parent.member``, recursing through nested tuples and through
fixed-length arrays of tuples (``parent[i].member``). The flat field list is
re-assembled into nested Values on submission.
"""

from decimal import Decimal
from typing import Iterator, List, Optional, Sequence, Union

from evmcards.abi.methods import Parameter
from evmcards.abi.types import ArrayType, BoolType, TupleType, ValueType
from evmcards.abi.validator import validate_amount, validate_or_error
from evmcards.abi.values import Value
from evmcards.utils.exceptions import ValidationError

AMOUNT_LABEL = "value"


class Field:
    """
    One editable form field.

    ``parsed`` always reflects ``raw_text``: it is recomputed on every
    mutation and holds either the typed result or the ValidationError.
    Bool fields ignore text input and change only through toggle().
    """

    def __init__(self, label: str, value_type: Optional[ValueType], raw_text: str = ""):
        self.label = label
        self.type = value_type
        self.raw_text = raw_text
        self.parsed: Union[Value, Decimal, ValidationError, None] = None
        if self.is_bool:
            self._flag = False
            self.raw_text = "false"
        self.revalidate()

    def __repr__(self):
        return f"Field({self.label!r}, {self.type_label!r}, {self.raw_text!r})"

    @property
    def is_bool(self) -> bool:
        return isinstance(self.type, BoolType)

    @property
    def type_label(self) -> str:
        return self.type.canonical() if self.type is not None else ""

    @property
    def error(self) -> Optional[ValidationError]:
        return self.parsed if isinstance(self.parsed, ValidationError) else None

    @property
    def value(self):
        return None if self.error is not None else self.parsed

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def revalidate(self) -> None:
        if self.is_bool:
            self.parsed = Value(self.type, self._flag)
        else:
            self.parsed = self._parse(self.raw_text)

    def _parse(self, text: str):
        return validate_or_error(self.type, text)

    def set_text(self, text: str) -> None:
        if self.is_bool:
            return
        self.raw_text = text
        self.revalidate()

    def type_text(self, text: str) -> None:
        self.set_text(self.raw_text + text)

    def backspace(self) -> None:
        self.set_text(self.raw_text[:-1])

    def toggle(self) -> None:
        if not self.is_bool:
            return
        self._flag = not self._flag
        self.raw_text = "true" if self._flag else "false"
        self.revalidate()


class AmountField(Field):
    """Trailing native-asset amount field for payable actions."""

    def __init__(self, label: str = AMOUNT_LABEL, raw_text: str = "0"):
        super().__init__(label, None, raw_text)

    @property
    def type_label(self) -> str:
        return "ether"

    def _parse(self, text: str):
        try:
            return validate_amount(text)
        except ValidationError as e:
            return e


# ============================================================================
# Flattening
# ============================================================================

def _expands(value_type: ValueType) -> bool:
    """Whether a type is split into several fields rather than edited as text."""
    if isinstance(value_type, TupleType):
        return True
    if isinstance(value_type, ArrayType) and value_type.length is not None:
        return _expands(value_type.element)
    return False


def _flatten(label: str, value_type: ValueType, out: List[Field]) -> None:
    if isinstance(value_type, TupleType):
        for i, member in enumerate(value_type.members):
            _flatten(f"{label}.{member.name or i}", member.type, out)
    elif isinstance(value_type, ArrayType) and _expands(value_type):
        for i in range(value_type.length):
            _flatten(f"{label}[{i}]", value_type.element, out)
    else:
        out.append(Field(label, value_type))


def flatten_parameters(params: Sequence[Parameter]) -> List[Field]:
    """Depth-first flattening of a parameter list into form fields."""
    fields: List[Field] = []
    for i, param in enumerate(params):
        _flatten(param.name or f"arg{i}", param.type, fields)
    return fields


def _take(value_type: ValueType, values: Iterator[Value]) -> Value:
    if isinstance(value_type, TupleType):
        return Value(value_type, tuple(_take(m.type, values) for m in value_type.members))
    if isinstance(value_type, ArrayType) and _expands(value_type):
        return Value(value_type, tuple(_take(value_type.element, values) for _ in range(value_type.length)))
    return next(values)


def assemble(params: Sequence[Parameter], values: Sequence[Value]) -> List[Value]:
    """Rebuild one Value per parameter from the flat field values."""
    it = iter(values)
    result = [_take(param.type, it) for param in params]
    leftover = next(it, None)
    if leftover is not None:
        raise ValueError("More field values than parameters")
    return result
