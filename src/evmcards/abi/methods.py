"""
Method references and contract ABI loading.

A MethodRef is what the resource navigator hands to the card engine when the
user invokes a contract function: the function's signature, its typed
parameters, the target address and whether it is payable/view.
"""

import json
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from eth_abi.abi import decode as abi_decode
from eth_utils import keccak, to_checksum_address

from evmcards.utils.exceptions import ArtifactError, InvalidTypeError
from evmcards.utils.logging import get_logger
from .types import TupleMember, ValueType, from_abi_param, parse_type, split_top_level
from .values import value_from_abi

logger = get_logger("abi")

# A function parameter is a named type, exactly like a tuple member
Parameter = TupleMember

DATA_LOCATIONS = ("memory", "calldata", "storage", "indexed", "payable")
_ARRAY_DIMS = re.compile(r"(?:\s*\[\d*\])*")


@dataclass(frozen=True)
class MethodRef:
    """A callable contract function bound to a target address."""
    name: str
    inputs: Tuple[Parameter, ...]
    target: Optional[str] = None
    outputs: Tuple[Parameter, ...] = ()
    is_payable: bool = False
    is_view: bool = False
    # Creation code; set only for constructors
    bytecode: Optional[str] = None

    @property
    def is_deploy(self) -> bool:
        return self.bytecode is not None

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type.canonical() for p in self.inputs)})"

    @property
    def input_types(self) -> List[ValueType]:
        return [p.type for p in self.inputs]

    @property
    def output_types(self) -> List[ValueType]:
        return [p.type for p in self.outputs]

    def bind(self, target: str) -> "MethodRef":
        return replace(self, target=to_checksum_address(target))

    @classmethod
    def from_signature(
        cls,
        signature: str,
        target: Optional[str] = None,
        is_payable: bool = False,
        is_view: bool = False,
    ) -> "MethodRef":
        """
        Parse a human-written signature.

        Accepts ``transfer(address,uint256)``, parameter names
        (``transfer(address to, uint256 amount)``) and an optional output
        list (``balanceOf(address)(uint256)``).
        """
        text = signature.strip()
        open_idx = text.find("(")
        if open_idx <= 0:
            raise InvalidTypeError(f"Invalid function signature: {signature}", type_string=signature)
        name = text[:open_idx].strip()
        close_idx = _matching_paren(text, open_idx)
        inputs = _parse_param_list(text[open_idx + 1:close_idx])
        rest = text[close_idx + 1:].strip()
        outputs: Tuple[Parameter, ...] = ()
        if rest:
            if not (rest.startswith("(") and rest.endswith(")")):
                raise InvalidTypeError(f"Invalid output list in: {signature}", type_string=signature)
            outputs = _parse_param_list(rest[1:-1])
        return cls(
            name=name,
            inputs=inputs,
            target=to_checksum_address(target) if target else None,
            outputs=outputs,
            is_payable=is_payable,
            is_view=is_view,
        )

    @classmethod
    def from_abi_item(cls, item: Dict[str, Any], target: Optional[str] = None) -> "MethodRef":
        """Build from a JSON ABI function entry."""
        mutability = item.get("stateMutability")
        if mutability is None:
            # Pre-0.5 ABI flags
            is_view = bool(item.get("constant", False))
            is_payable = bool(item.get("payable", False))
        else:
            is_view = mutability in ("view", "pure")
            is_payable = mutability == "payable"
        return cls(
            name=item["name"],
            inputs=tuple(
                Parameter(name=inp.get("name", ""), type=from_abi_param(inp))
                for inp in item.get("inputs", [])
            ),
            target=to_checksum_address(target) if target else None,
            outputs=tuple(
                Parameter(name=out.get("name", ""), type=from_abi_param(out))
                for out in item.get("outputs", [])
            ),
            is_payable=is_payable,
            is_view=is_view,
        )


def _matching_paren(text: str, open_idx: int) -> int:
    depth = 0
    for i in range(open_idx, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    raise InvalidTypeError(f"Unbalanced parentheses in: {text}", type_string=text)


def _parse_param_list(body: str) -> Tuple[Parameter, ...]:
    if not body.strip():
        return ()
    params = []
    for part in split_top_level(body):
        part = part.strip()
        # "uint256 amount" / "(address,uint256)[] recipients" / "string memory name"
        if part.startswith("("):
            close_idx = _matching_paren(part, 0)
            suffix = _ARRAY_DIMS.match(part[close_idx + 1:])
            type_text = part[:close_idx + 1] + suffix.group(0).replace(" ", "")
            names = part[close_idx + 1 + suffix.end():].split()
        else:
            pieces = part.split()
            type_text, names = pieces[0], pieces[1:]
        names = [n for n in names if n not in DATA_LOCATIONS]
        params.append(Parameter(name=names[-1] if names else "", type=parse_type(type_text)))
    return tuple(params)


# ============================================================================
# Contract ABI
# ============================================================================

@dataclass
class EventAbi:
    name: str
    signature: str
    inputs: List[Dict[str, Any]]


@dataclass
class ContractAbi:
    """Functions and events of one contract ABI, plus creation code when loaded from an artifact."""
    functions: List[Dict[str, Any]] = field(default_factory=list)
    events: Dict[str, EventAbi] = field(default_factory=dict)  # topic0 -> event
    name: Optional[str] = None
    constructor: Optional[Dict[str, Any]] = None
    bytecode: Optional[str] = None

    def methods(self, target: Optional[str] = None) -> List[MethodRef]:
        return [MethodRef.from_abi_item(item, target) for item in self.functions]

    def deploy_method(self) -> MethodRef:
        """
        The constructor as a method with no target.

        Raises:
            ArtifactError: if the artifact has no creation code (plain ABI
                files, interfaces, abstract contracts)
        """
        if not self.bytecode:
            raise ArtifactError(f"{self.name or 'Contract'} has no bytecode to deploy", contract=self.name)
        item = dict(self.constructor or {"inputs": [], "stateMutability": "nonpayable"})
        item["name"] = "constructor"
        return replace(MethodRef.from_abi_item(item), bytecode=self.bytecode)

    def merge(self, other: "ContractAbi") -> None:
        self.functions.extend(other.functions)
        self.events.update(other.events)

    def decode_log(self, log_entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Decode an event log using the loaded event ABIs.

        Returns:
            ``{"event": name, "args": {...}}`` or None if the event is unknown
            or the data does not decode.
        """
        topics = [_hex(t) for t in log_entry.get("topics", [])]
        if not topics or topics[0] not in self.events:
            return None
        event = self.events[topics[0]]
        indexed = [inp for inp in event.inputs if inp.get("indexed", False)]
        non_indexed = [inp for inp in event.inputs if not inp.get("indexed", False)]

        args: Dict[str, Any] = {}
        try:
            for topic, inp in zip(topics[1:], indexed):
                inp_type = from_abi_param(inp)
                if _is_hashed_topic(inp_type.canonical()):
                    args[inp.get("name", "")] = topic
                    continue
                (obj,) = abi_decode([inp_type.canonical()], bytes.fromhex(topic[2:]))
                args[inp.get("name", "")] = value_from_abi(inp_type, obj).to_json()
            if non_indexed:
                data = _hex(log_entry.get("data", "0x"))
                types = [from_abi_param(inp) for inp in non_indexed]
                decoded = abi_decode([t.canonical() for t in types], bytes.fromhex(data[2:]))
                for inp, inp_type, obj in zip(non_indexed, types, decoded):
                    args[inp.get("name", "")] = value_from_abi(inp_type, obj).to_json()
        except Exception as e:
            logger.debug(f"Could not decode {event.name} log: {e}")
            return None
        return {"event": event.name, "signature": event.signature, "args": args}


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def _is_hashed_topic(canonical: str) -> bool:
    # Dynamic indexed values are stored as their keccak hash
    return canonical in ("string", "bytes") or canonical.endswith("]") or canonical.startswith("(")


def _artifact_bytecode(artifact: Dict[str, Any]) -> Optional[str]:
    # Forge: {"bytecode": {"object": "0x..."}}, Hardhat: {"bytecode": "0x..."}
    bytecode = artifact.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    if not isinstance(bytecode, str):
        return None
    bytecode = bytecode if bytecode.startswith("0x") else "0x" + bytecode
    if bytecode == "0x":
        return None
    # Unlinked library placeholders (__$...$__) cannot be deployed as is
    if "__" in bytecode:
        logger.warning("Artifact bytecode has unlinked library references")
        return None
    return bytecode


def parse_abi(data: Any, name: Optional[str] = None) -> ContractAbi:
    """Build a ContractAbi from a plain ABI list or a Forge/Hardhat artifact."""
    bytecode = None
    if isinstance(data, dict) and "abi" in data:
        bytecode = _artifact_bytecode(data)
        name = data.get("contractName") or name
        data = data["abi"]
    if not isinstance(data, list):
        raise InvalidTypeError("Unknown ABI format")

    abi = ContractAbi(name=name, bytecode=bytecode)
    for item in data:
        if item.get("type") == "function":
            abi.functions.append(item)
        elif item.get("type") == "constructor":
            abi.constructor = item
        elif item.get("type") == "event":
            inputs = item.get("inputs", [])
            types = ",".join(from_abi_param(inp).canonical() for inp in inputs)
            signature = f"{item['name']}({types})"
            topic = "0x" + keccak(text=signature).hex()
            abi.events[topic] = EventAbi(name=item["name"], signature=signature, inputs=inputs)
    return abi


def load_abi_file(abi_path: str) -> ContractAbi:
    """Load an ABI from disk (``.abi`` / ``.json`` / build artifact)."""
    with open(Path(abi_path), "r") as f:
        data = json.load(f)
    abi = parse_abi(data, name=Path(abi_path).stem)
    logger.debug(f"Loaded {len(abi.functions)} functions and {len(abi.events)} events from {abi_path}")
    return abi
