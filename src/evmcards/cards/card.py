"""
Card model.

A card is one past operation shown in the output panel. Call and Log cards
are created resolved; Transaction cards start PENDING and are finalized once,
by swapping in a new payload built from the receipt.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from evmcards.abi.values import Value
from evmcards.utils.exceptions import CardStateError


class CardKind(str, Enum):
    CALL = "call"
    TRANSACTION = "transaction"
    LOG = "log"


class TxStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Receipt:
    """Transaction receipt as returned by the RPC client."""
    tx_hash: str
    status: int
    gas_used: int
    block_number: int
    logs: Tuple[Dict[str, Any], ...] = ()
    contract_address: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class CallPayload:
    signature: str
    arguments: Tuple[Value, ...]
    result: Optional[Tuple[Value, ...]] = None
    error: Optional[str] = None
    from_address: Optional[str] = None
    to: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class TransactionPayload:
    hash: str
    signature: str
    arguments: Tuple[Value, ...]
    to: Optional[str]
    status: TxStatus = TxStatus.PENDING
    gas_used: Optional[int] = None
    logs: Tuple[Dict[str, Any], ...] = ()
    block_number: Optional[int] = None
    value_wei: int = 0
    stalled: bool = False
    contract_address: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status is TxStatus.PENDING

    @property
    def is_deployment(self) -> bool:
        return self.to is None

    def resolve(self, receipt: Receipt) -> "TransactionPayload":
        """
        Finalized copy of this payload.

        Status, gas, block, logs and the created contract address change
        together in the returned object, so a reader never sees SUCCESS
        without gas_used.

        Raises:
            CardStateError: if the payload is already finalized
        """
        if not self.is_pending:
            raise CardStateError(f"Transaction {self.hash} is already {self.status.value}")
        return replace(
            self,
            status=TxStatus.SUCCESS if receipt.succeeded else TxStatus.FAILED,
            gas_used=receipt.gas_used,
            logs=tuple(receipt.logs),
            block_number=receipt.block_number,
            contract_address=receipt.contract_address,
            stalled=False,
        )


@dataclass(frozen=True)
class LogPayload:
    severity: Severity
    message: str


Payload = Union[CallPayload, TransactionPayload, LogPayload]

PAYLOAD_KINDS = {
    CallPayload: CardKind.CALL,
    TransactionPayload: CardKind.TRANSACTION,
    LogPayload: CardKind.LOG,
}


@dataclass
class Card:
    """One entry of the output panel."""
    id: int
    kind: CardKind
    created_at: int  # insertion sequence number
    payload: Payload

    def __post_init__(self):
        expected = PAYLOAD_KINDS.get(type(self.payload))
        if expected is not self.kind:
            raise CardStateError(
                f"{type(self.payload).__name__} cannot back a {self.kind.value} card",
                card_id=self.id,
            )

    @property
    def is_pending(self) -> bool:
        return self.kind is CardKind.TRANSACTION and self.payload.is_pending

    def swap_payload(self, payload: Payload) -> None:
        """Replace the payload in one assignment."""
        if type(payload) is not type(self.payload):
            raise CardStateError("Card kind cannot change", card_id=self.id)
        self.payload = payload
