"""
ABI value layer for evmcards.

- Value Type Model: the recursive ABI type algebra
- Field Validator: text -> typed Value
- Codec: Values <-> ABI-encoded bytes
- MethodRef / ContractAbi: callable functions and event decoding
"""

from .types import (
    AddressType,
    BoolType,
    UIntType,
    IntType,
    BytesType,
    StringType,
    ArrayType,
    TupleType,
    TupleMember,
    ValueType,
    parse_type,
    from_abi_param,
    format_abi_type,
    is_primitive,
)
from .values import Value, render, value_from_abi
from .validator import validate, validate_or_error, validate_amount, amount_to_wei, split_elements
from .codec import function_selector, encode_arguments, encode_call, encode_deploy, decode_result
from .methods import MethodRef, Parameter, ContractAbi, parse_abi, load_abi_file

__all__ = [
    'AddressType',
    'BoolType',
    'UIntType',
    'IntType',
    'BytesType',
    'StringType',
    'ArrayType',
    'TupleType',
    'TupleMember',
    'ValueType',
    'parse_type',
    'from_abi_param',
    'format_abi_type',
    'is_primitive',
    'Value',
    'render',
    'value_from_abi',
    'validate',
    'validate_or_error',
    'validate_amount',
    'amount_to_wei',
    'split_elements',
    'function_selector',
    'encode_arguments',
    'encode_call',
    'encode_deploy',
    'decode_result',
    'MethodRef',
    'Parameter',
    'ContractAbi',
    'parse_abi',
    'load_abi_file',
]
