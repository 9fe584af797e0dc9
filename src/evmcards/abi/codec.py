"""
ABI encoding and decoding of typed values.
"""

from typing import List, Sequence

from eth_abi.abi import decode as abi_decode
from eth_abi.abi import encode as abi_encode
from eth_hash.auto import keccak

from .types import ValueType
from .values import Value, value_from_abi


def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 of the canonical signature."""
    return keccak(signature.encode())[:4]


def encode_arguments(types: Sequence[ValueType], values: Sequence[Value]) -> bytes:
    """ABI-encode values (without selector)."""
    if len(types) != len(values):
        raise ValueError(f"Expected {len(types)} values, got {len(values)}")
    return abi_encode(
        [t.canonical() for t in types],
        [v.to_abi() for v in values],
    )


def encode_call(signature: str, types: Sequence[ValueType], values: Sequence[Value]) -> str:
    """Build hex calldata: selector followed by encoded arguments."""
    return "0x" + (function_selector(signature) + encode_arguments(types, values)).hex()


def encode_deploy(bytecode: str, types: Sequence[ValueType], values: Sequence[Value]) -> str:
    """Contract creation data: init code followed by the encoded constructor arguments."""
    code = bytecode[2:] if bytecode.startswith("0x") else bytecode
    return "0x" + code + encode_arguments(types, values).hex()


def decode_result(types: Sequence[ValueType], data: bytes) -> List[Value]:
    """Decode return data into Values of the given output types."""
    if not types:
        return []
    decoded = abi_decode([t.canonical() for t in types], bytes(data))
    return [value_from_abi(t, obj) for t, obj in zip(types, decoded)]
