"""
Utilities module for evmcards.

Provides exception handling, logging and colors.
"""

from .exceptions import (
    EvmCardsError,
    ValidationError,
    MalformedAddressError,
    MalformedBoolError,
    NotANumberError,
    OutOfRangeError,
    MalformedBytesError,
    ArityMismatchError,
    InvalidTypeError,
    ArtifactError,
    RPCConnectionError,
    ExecutionError,
    TraceUnavailableError,
    FormClosedError,
    CardStateError,
    ConfigError,
    ViewerUnavailableError,
    ClipboardUnavailableError,
    format_error,
    format_exception_message,
)
from .logging import setup_logging, get_logger, logger, TRACE
from .colors import (
    Colors,
    SUPPORTS_COLOR,
    cyan, bold, dim,
    error, success, warning, info,
    address, number, gas_value, function_name,
)

__all__ = [
    # Exceptions
    'EvmCardsError',
    'ValidationError',
    'MalformedAddressError',
    'MalformedBoolError',
    'NotANumberError',
    'OutOfRangeError',
    'MalformedBytesError',
    'ArityMismatchError',
    'InvalidTypeError',
    'ArtifactError',
    'RPCConnectionError',
    'ExecutionError',
    'TraceUnavailableError',
    'FormClosedError',
    'CardStateError',
    'ConfigError',
    'ViewerUnavailableError',
    'ClipboardUnavailableError',
    # Formatting
    'format_error',
    'format_exception_message',
    # Logging
    'setup_logging',
    'get_logger',
    'logger',
    'TRACE',
    # Colors
    'Colors',
    'SUPPORTS_COLOR',
    'cyan', 'bold', 'dim',
    'error', 'success', 'warning', 'info',
    'address', 'number', 'gas_value', 'function_name',
]
