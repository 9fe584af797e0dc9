"""
Messages posted by worker threads to the session queue.

Worker threads never touch the card store or the form. They report through
these messages, and Session.pump() applies them on the UI thread.

Messages carrying a ``slot`` answer a request made at a known call site and
are applied strictly in slot order. The others (receipts, stalls,
connectivity, account info) are applied as they arrive.
"""

from dataclasses import dataclass
from typing import Optional, Union

from evmcards.cards.card import CallPayload, Receipt, Severity, TransactionPayload


@dataclass(frozen=True)
class CallCompleted:
    slot: int
    payload: CallPayload


@dataclass(frozen=True)
class TransactionSubmitted:
    slot: int
    payload: TransactionPayload


@dataclass(frozen=True)
class Notice:
    """Result that becomes a Log card (failures, warnings)."""
    slot: int
    severity: Severity
    message: str


@dataclass(frozen=True)
class ViewReady:
    """Document to open in the external viewer (trace, receipt)."""
    slot: int
    title: str
    text: str


@dataclass(frozen=True)
class ReceiptResolved:
    card_id: int
    receipt: Receipt


@dataclass(frozen=True)
class PollStalled:
    card_id: int
    tx_hash: str
    attempts: int


@dataclass(frozen=True)
class ConnectionChanged:
    connected: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class AccountInfo:
    address: Optional[str]
    balance_wei: Optional[int]
    chain_id: int


SlotMessage = Union[CallCompleted, TransactionSubmitted, Notice, ViewReady]
Message = Union[SlotMessage, ReceiptResolved, PollStalled, ConnectionChanged, AccountInfo]

SLOT_MESSAGES = (CallCompleted, TransactionSubmitted, Notice, ViewReady)
