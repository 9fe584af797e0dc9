"""
evmcards - contract calls and transactions as navigable cards
"""

__version__ = "0.1.0"

# Main entry point
from .cli.main import main

# Typed values and validation
from .abi import (
    parse_type,
    validate,
    Value,
    MethodRef,
    ContractAbi,
)

# Forms
from .forms import (
    ParameterForm,
    FormState,
)

# Cards
from .cards import (
    Card,
    CardKind,
    CardStore,
    TxStatus,
    TracerConfig,
    TracerKind,
)

# Runtime
from .core import (
    RpcClient,
    Session,
    PendingOperationTracker,
)
from .config import Config, load_config

# Utilities
from .utils import (
    Colors,
    error, warning, info, success,
    EvmCardsError,
    ValidationError,
    RPCConnectionError,
)

__all__ = [
    # Version
    '__version__',
    # Main
    'main',
    # Values
    'parse_type',
    'validate',
    'Value',
    'MethodRef',
    'ContractAbi',
    # Forms
    'ParameterForm',
    'FormState',
    # Cards
    'Card',
    'CardKind',
    'CardStore',
    'TxStatus',
    'TracerConfig',
    'TracerKind',
    # Runtime
    'RpcClient',
    'Session',
    'PendingOperationTracker',
    'Config',
    'load_config',
    # Utils
    'Colors',
    'error', 'warning', 'info', 'success',
    'EvmCardsError',
    'ValidationError',
    'RPCConnectionError',
]
