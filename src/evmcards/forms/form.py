"""
Parameter Form Controller

Owns the ordered fields of one pending action, the focus cursor and the
all-or-nothing submission:

    EDITING --Tab/Shift+Tab--> EDITING        (focus only)
    EDITING --submit, any error--> INVALID    (focus -> lowest invalid field)
    INVALID --any edit--> EDITING
    EDITING --submit, all valid--> READY      (terminal, yields values)
    any non-terminal --cancel--> CANCELLED    (terminal, no side effects)
"""

from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence

from evmcards.abi.methods import MethodRef, Parameter
from evmcards.abi.values import Value
from evmcards.utils.exceptions import FormClosedError
from evmcards.utils.logging import get_logger
from .fields import AmountField, Field, assemble, flatten_parameters

logger = get_logger("form")


class FormState(str, Enum):
    EDITING = "editing"
    INVALID = "invalid"
    READY = "ready"
    CANCELLED = "cancelled"


class ParameterForm:
    """Fields for one action invocation, filled in by the user."""

    def __init__(self, title: str, params: Sequence[Parameter], payable: bool = False):
        self.title = title
        self.params = tuple(params)
        self.fields: List[Field] = flatten_parameters(self.params)
        self.amount_field: Optional[AmountField] = None
        if payable:
            self.amount_field = AmountField()
            self.fields.append(self.amount_field)
        self.focus_index = 0
        self.state = FormState.EDITING
        self.invalid_index: Optional[int] = None
        self._values: Optional[List[Value]] = None

    @classmethod
    def for_method(cls, method: MethodRef) -> "ParameterForm":
        return cls(method.signature, method.inputs, payable=method.is_payable)

    def __repr__(self):
        return f"ParameterForm({self.title!r}, state={self.state.value}, fields={len(self.fields)})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self.state in (FormState.READY, FormState.CANCELLED)

    @property
    def focused(self) -> Optional[Field]:
        if not self.fields:
            return None
        return self.fields[self.focus_index]

    @property
    def values(self) -> Optional[List[Value]]:
        """Argument values, available once the form is READY."""
        return self._values

    @property
    def amount(self) -> Optional[Decimal]:
        if self.amount_field is None or self.state is not FormState.READY:
            return None
        return self.amount_field.value

    def first_invalid_index(self) -> Optional[int]:
        for i, field in enumerate(self.fields):
            if not field.is_valid:
                return i
        return None

    # ------------------------------------------------------------------
    # Focus
    # ------------------------------------------------------------------

    def focus_next(self) -> None:
        self._ensure_open()
        if self.fields:
            self.focus_index = (self.focus_index + 1) % len(self.fields)

    def focus_prev(self) -> None:
        self._ensure_open()
        if self.fields:
            self.focus_index = (self.focus_index - 1) % len(self.fields)

    def focus(self, index: int) -> None:
        self._ensure_open()
        if not 0 <= index < len(self.fields):
            raise IndexError(f"No field {index} in form '{self.title}'")
        self.focus_index = index

    # ------------------------------------------------------------------
    # Edits (each re-validates the focused field)
    # ------------------------------------------------------------------

    def type_text(self, text: str) -> None:
        self._edit(lambda f: f.type_text(text))

    def backspace(self) -> None:
        self._edit(lambda f: f.backspace())

    def set_text(self, text: str) -> None:
        self._edit(lambda f: f.set_text(text))

    def toggle(self) -> None:
        self._edit(lambda f: f.toggle())

    def _edit(self, mutate) -> None:
        self._ensure_open()
        field = self.focused
        if field is None:
            return
        mutate(field)
        self.state = FormState.EDITING
        self.invalid_index = None

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self) -> Optional[List[Value]]:
        """
        Try to submit the form.

        Returns:
            The argument values in parameter order (tuples re-assembled) if
            every field is valid, otherwise None. A failed submission leaves
            the form INVALID with focus on the lowest invalid field.
        """
        self._ensure_open()
        for field in self.fields:
            field.revalidate()

        invalid = self.first_invalid_index()
        if invalid is not None:
            self.state = FormState.INVALID
            self.invalid_index = invalid
            self.focus_index = invalid
            logger.debug(f"Form '{self.title}' rejected: field {self.fields[invalid].label} is invalid")
            return None

        arg_fields = [f for f in self.fields if f is not self.amount_field]
        self._values = assemble(self.params, [f.value for f in arg_fields])
        self.state = FormState.READY
        logger.debug(f"Form '{self.title}' ready with {len(self._values)} arguments")
        return list(self._values)

    def cancel(self) -> None:
        self._ensure_open()
        self.state = FormState.CANCELLED
        logger.debug(f"Form '{self.title}' cancelled")

    def _ensure_open(self) -> None:
        if self.is_closed:
            raise FormClosedError(self.title, self.state.value)
