"""
Custom exceptions for evmcards.

This module provides a hierarchy of exceptions for the different error cases
of the card engine and the parameter validator, along with utilities for
formatting errors consistently.
"""

import json
from typing import Any, Dict, Optional


class EvmCardsError(Exception):
    """
    Base exception for all evmcards errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
        error_code: Optional error code for programmatic handling
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": True,
            "type": self.error_code,
            "message": self.message,
            **self.details
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(EvmCardsError):
    """
    Raised when field text does not parse into a value of the field's type.

    Validation errors never abort a form; they are stored on the field and
    rendered inline under it.
    """

    code = "ValidationError"

    def __init__(self, message: str, index: Optional[int] = None, **kwargs):
        details = dict(kwargs)
        if index is not None:
            details["index"] = index
        super().__init__(message, details, self.code)
        self.index = index

    def at_index(self, index: int) -> "ValidationError":
        """Return a copy of this error tagged with an array element index."""
        details = {k: v for k, v in self.details.items() if k != "index"}
        return type(self)(f"[{index}] {self.message}", index=index, **details)

    def __eq__(self, other):
        if not isinstance(other, ValidationError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self):
        return hash((type(self), self.message))


class MalformedAddressError(ValidationError):
    """Address text is not 0x followed by 40 hex characters."""
    code = "MalformedAddress"


class MalformedBoolError(ValidationError):
    """Boolean literal not recognised."""
    code = "MalformedBool"


class NotANumberError(ValidationError):
    """Text is not a base-10 number."""
    code = "NotANumber"


class OutOfRangeError(ValidationError):
    """Number does not fit the integer type."""
    code = "OutOfRange"


class MalformedBytesError(ValidationError):
    """Bytes text is not even-length 0x hex, or has the wrong fixed length."""
    code = "MalformedBytes"


class ArityMismatchError(ValidationError):
    """Fixed-length array or tuple literal has the wrong number of elements."""
    code = "ArityMismatch"


class InvalidTypeError(EvmCardsError):
    """Raised when an ABI type string or type parameters are invalid."""

    def __init__(self, message: str, type_string: Optional[str] = None, **kwargs):
        details = {"type_string": type_string} if type_string else {}
        details.update(kwargs)
        super().__init__(message, details, "InvalidTypeError")


class ArtifactError(EvmCardsError):
    """Raised when a contract artifact lacks what an operation needs (e.g. bytecode)."""

    def __init__(self, message: str, contract: Optional[str] = None):
        details = {"contract": contract} if contract else {}
        super().__init__(message, details, "ArtifactError")


# ============================================================================
# Connection Errors
# ============================================================================

class RPCConnectionError(EvmCardsError):
    """Raised when the RPC endpoint cannot be reached or times out."""

    def __init__(self, message: str, rpc_url: Optional[str] = None, **kwargs):
        details = {"rpc_url": rpc_url} if rpc_url else {}
        details.update(kwargs)
        super().__init__(message, details, "RPCConnectionError")


# ============================================================================
# Execution Errors
# ============================================================================

class ExecutionError(EvmCardsError):
    """Raised when a call or transaction reverts or otherwise fails remotely."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        **kwargs
    ):
        details = {}
        if tx_hash:
            details["tx_hash"] = tx_hash
        details.update(kwargs)
        super().__init__(message, details, "ExecutionError")


class TraceUnavailableError(ExecutionError):
    """Raised when the node cannot produce a debug trace."""

    def __init__(
        self,
        target: str,
        reason: Optional[str] = None,
        **kwargs
    ):
        message = f"debug trace unavailable for {target}"
        if reason:
            message += f": {reason}"
        super().__init__(message, **kwargs)
        self.error_code = "TraceUnavailable"


# ============================================================================
# Local state errors
# ============================================================================

class FormClosedError(EvmCardsError):
    """Raised when a submitted or cancelled form is edited."""

    def __init__(self, title: str, state: str):
        super().__init__(
            f"Form '{title}' is {state} and can no longer be edited",
            {"form": title, "state": state},
            "FormClosedError",
        )


class CardStateError(EvmCardsError):
    """Raised on an illegal card lifecycle transition."""

    def __init__(self, message: str, card_id: Optional[int] = None, **kwargs):
        details = {"card_id": card_id} if card_id is not None else {}
        details.update(kwargs)
        super().__init__(message, details, "CardStateError")


class ConfigError(EvmCardsError):
    """Raised when the configuration file cannot be read or parsed."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = {"path": path} if path else {}
        details.update(kwargs)
        super().__init__(message, details, "ConfigError")


# ============================================================================
# External tool errors
# ============================================================================

class ViewerUnavailableError(EvmCardsError):
    """Raised when the configured external viewer cannot be started."""

    def __init__(self, viewer: str, reason: Optional[str] = None):
        message = f"Viewer '{viewer}' is not available"
        if reason:
            message += f": {reason}"
        super().__init__(message, {"viewer": viewer}, "ViewerUnavailableError")


class ClipboardUnavailableError(EvmCardsError):
    """Raised when no clipboard tool is installed."""

    def __init__(self, message: str = "No clipboard tool found (tried pbcopy, wl-copy, xclip, xsel)"):
        super().__init__(message, None, "ClipboardUnavailableError")


# ============================================================================
# Display helpers
# ============================================================================

def format_exception_message(e: Exception) -> str:
    """
    One-line message for any exception that reaches a card or the CLI.

    web3 errors carry the node's reply in different places: a JSON-RPC error
    object ``{'code': ..., 'message': ...}`` as first argument, or a
    ``message`` attribute on revert errors.
    """
    if isinstance(e, EvmCardsError):
        return e.message
    if not e.args:
        return getattr(e, "message", None) or type(e).__name__
    first = e.args[0]
    if isinstance(first, dict):
        return str(first.get("message", first))
    return str(first)


def format_error(e: Exception, json_mode: bool = False) -> str:
    """Colored message, or the JSON error object in json_mode."""
    from evmcards.utils.colors import error

    if not json_mode:
        return error(format_exception_message(e))
    if isinstance(e, EvmCardsError):
        return e.to_json()
    return json.dumps(
        {"error": True, "type": type(e).__name__, "message": format_exception_message(e)},
        indent=2,
    )
