"""
Card Store: the ordered output panel and its single selection.

Insertion order is render order. The selection is an index into the list and
exists exactly when the store is non-empty. Navigation wraps in both
directions.
"""

from dataclasses import replace
from typing import Dict, Iterator, List, Optional

from evmcards.utils.exceptions import CardStateError
from evmcards.utils.logging import get_logger
from .card import Card, CardKind, LogPayload, Payload, PAYLOAD_KINDS, Receipt, Severity

logger = get_logger("cards")


class CardStore:
    def __init__(self):
        self._cards: List[Card] = []
        self._index: Dict[int, Card] = {}
        self._selected: Optional[int] = None
        self._next_id = 1
        self._sequence = 0

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(list(self._cards))

    def __bool__(self) -> bool:
        return bool(self._cards)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def new_card(self, kind: CardKind, payload: Payload) -> Card:
        """Allocate a card id and sequence number (the card is not inserted)."""
        card = Card(
            id=self._next_id,
            kind=kind,
            created_at=self._sequence,
            payload=payload,
        )
        self._next_id += 1
        self._sequence += 1
        return card

    def insert(self, card: Card) -> Card:
        """Append a card and select it."""
        if card.id in self._index:
            raise CardStateError(f"Card {card.id} is already in the store", card_id=card.id)
        self._cards.append(card)
        self._index[card.id] = card
        self._selected = len(self._cards) - 1
        logger.debug(f"Inserted {card.kind.value} card #{card.id}")
        return card

    def add(self, payload: Payload) -> Card:
        return self.insert(self.new_card(PAYLOAD_KINDS[type(payload)], payload))

    def log(self, severity: Severity, message: str) -> Card:
        return self.add(LogPayload(severity=severity, message=message))

    def clear(self) -> None:
        """Remove every card. Ids keep increasing afterwards."""
        count = len(self._cards)
        self._cards.clear()
        self._index.clear()
        self._selected = None
        logger.debug(f"Cleared {count} cards")

    # ------------------------------------------------------------------
    # Lookup and selection
    # ------------------------------------------------------------------

    def get(self, card_id: int) -> Optional[Card]:
        return self._index.get(card_id)

    @property
    def selected_index(self) -> Optional[int]:
        return self._selected

    @property
    def selected(self) -> Optional[Card]:
        if self._selected is None:
            return None
        return self._cards[self._selected]

    def is_selected(self, card: Card) -> bool:
        current = self.selected
        return current is not None and current.id == card.id

    def select(self, card_id: int) -> Card:
        for i, card in enumerate(self._cards):
            if card.id == card_id:
                self._selected = i
                return card
        raise KeyError(card_id)

    def select_next(self) -> Optional[Card]:
        if not self._cards:
            return None
        self._selected = (self._selected + 1) % len(self._cards)
        return self.selected

    def select_prev(self) -> Optional[Card]:
        if not self._cards:
            return None
        self._selected = (self._selected - 1) % len(self._cards)
        return self.selected

    def pending(self) -> List[Card]:
        return [c for c in self._cards if c.is_pending]

    # ------------------------------------------------------------------
    # Transaction lifecycle
    # ------------------------------------------------------------------

    def apply_receipt(self, card_id: int, receipt: Receipt) -> bool:
        """
        Finalize a pending transaction card from its receipt.

        Returns:
            True if the card changed. A receipt for an unknown (cleared) card
            or for an already finalized card is ignored.
        """
        card = self._transaction(card_id)
        if card is None:
            logger.debug(f"Receipt for card #{card_id} ignored: card no longer exists")
            return False
        if not card.payload.is_pending:
            logger.warning(
                f"Ignoring duplicate receipt for {card.payload.hash}: "
                f"card #{card_id} is already {card.payload.status.value}"
            )
            return False
        card.swap_payload(card.payload.resolve(receipt))
        logger.info(f"Transaction {card.payload.hash} {card.payload.status.value} (gas {card.payload.gas_used})")
        return True

    def mark_stalled(self, card_id: int, stalled: bool = True) -> bool:
        card = self._transaction(card_id)
        if card is None or not card.payload.is_pending:
            return False
        card.swap_payload(replace(card.payload, stalled=stalled))
        return True

    def _transaction(self, card_id: int) -> Optional[Card]:
        card = self._index.get(card_id)
        if card is None:
            return None
        if card.kind is not CardKind.TRANSACTION:
            raise CardStateError(f"Card #{card_id} is a {card.kind.value} card", card_id=card_id)
        return card
