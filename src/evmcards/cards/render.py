"""
Text rendering of cards for the console, and the JSON documents that the
view actions hand to the external viewer.
"""

import json
from typing import Any, Dict, List, Optional

from web3 import Web3

from evmcards.utils.colors import (
    address, bold, dim, error, function_name, gas_value, info, number, success, warning,
)
from .card import Card, CallPayload, LogPayload, Severity, TransactionPayload, TxStatus

_SEVERITY_STYLE = {
    Severity.INFO: info,
    Severity.SUCCESS: success,
    Severity.WARNING: warning,
    Severity.ERROR: error,
}

_STATUS_STYLE = {
    TxStatus.PENDING: warning,
    TxStatus.SUCCESS: success,
    TxStatus.FAILED: error,
}


def _short(value: Optional[str], keep: int = 10) -> str:
    if not value:
        return "-"
    if len(value) <= keep * 2:
        return value
    return f"{value[:keep]}...{value[-4:]}"


def _args_text(arguments) -> str:
    return ", ".join(arg.render() for arg in arguments)


def render_card(card: Card, selected: bool = False) -> List[str]:
    """Lines shown for one card in the output panel."""
    marker = bold(">") if selected else " "
    payload = card.payload
    header = f"{marker} #{card.id} "

    if isinstance(payload, LogPayload):
        style = _SEVERITY_STYLE[payload.severity]
        return [header + style(f"[{payload.severity.value}]") + f" {payload.message}"]

    if isinstance(payload, CallPayload):
        lines = [header + dim("call ") + function_name(payload.signature) + f" -> {address(_short(payload.to))}"]
        if payload.arguments:
            lines.append(f"    args: {_args_text(payload.arguments)}")
        if payload.error is not None:
            lines.append("    " + error(f"error: {payload.error}"))
        elif payload.result is not None:
            lines.append(f"    result: {_args_text(payload.result) if payload.result else '()'}")
        return lines

    status = _STATUS_STYLE[payload.status](payload.status.value)
    if payload.stalled:
        status += " " + warning("(stalled)")
    kind = "deploy " if payload.is_deployment else "tx "
    lines = [header + dim(kind) + function_name(payload.signature) + f" {status}"]
    lines.append(f"    hash: {payload.hash}")
    if payload.arguments:
        lines.append(f"    args: {_args_text(payload.arguments)}")
    if payload.value_wei:
        lines.append(f"    value: {number(Web3.from_wei(payload.value_wei, 'ether'))} ETH")
    if not payload.is_pending:
        lines.append(
            f"    block: {number(payload.block_number)}  gas: {gas_value(payload.gas_used)}"
            f"  logs: {len(payload.logs)}"
        )
    if payload.contract_address:
        lines.append(f"    contract: {address(payload.contract_address)}")
    return lines


# ============================================================================
# Viewer documents
# ============================================================================

def call_to_json(payload: CallPayload) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "signature": payload.signature,
        "to": payload.to,
        "from": payload.from_address,
        "arguments": [arg.to_json() for arg in payload.arguments],
    }
    if payload.error is not None:
        doc["error"] = payload.error
    else:
        doc["result"] = [value.to_json() for value in (payload.result or ())]
    return doc


def logs_to_json(payload: TransactionPayload, abi=None) -> List[Dict[str, Any]]:
    """Receipt logs, decoded with ``abi`` (a ContractAbi) where the event is known."""
    entries = []
    for i, log_entry in enumerate(payload.logs):
        decoded = abi.decode_log(log_entry) if abi is not None else None
        entry: Dict[str, Any] = {"index": i, "address": log_entry.get("address")}
        if decoded is not None:
            entry.update(decoded)
        else:
            entry["topics"] = list(log_entry.get("topics", []))
            entry["data"] = log_entry.get("data", "0x")
        entries.append(entry)
    return entries


def to_pretty_json(document: Any) -> str:
    return json.dumps(document, indent=2, default=str)
