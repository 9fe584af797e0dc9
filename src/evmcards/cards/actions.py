"""
Per-card action menu. The available actions depend only on the card kind.
"""

from enum import Enum
from typing import List, Optional

from .card import Card, CardKind


class CardAction(str, Enum):
    COPY_HASH = "copy-hash"
    VIEW_RECEIPT = "view-receipt"
    DEBUG_TRACE = "debug-trace"
    VIEW_LOGS = "view-logs"
    COPY_RESULT = "copy-result"
    VIEW_AS_JSON = "view-json"
    DEBUG_CALL = "debug-call"

    @property
    def title(self) -> str:
        return ACTION_TITLES[self]


ACTION_TITLES = {
    CardAction.COPY_HASH: "Copy transaction hash",
    CardAction.VIEW_RECEIPT: "View receipt",
    CardAction.DEBUG_TRACE: "Debug trace",
    CardAction.VIEW_LOGS: "View logs",
    CardAction.COPY_RESULT: "Copy result",
    CardAction.VIEW_AS_JSON: "View as JSON",
    CardAction.DEBUG_CALL: "Debug call",
}

_ACTIONS_BY_KIND = {
    CardKind.TRANSACTION: (
        CardAction.COPY_HASH,
        CardAction.VIEW_RECEIPT,
        CardAction.DEBUG_TRACE,
        CardAction.VIEW_LOGS,
    ),
    CardKind.CALL: (
        CardAction.COPY_RESULT,
        CardAction.VIEW_AS_JSON,
        CardAction.DEBUG_CALL,
    ),
    CardKind.LOG: (),
}


def actions_for(card: Card) -> List[CardAction]:
    return list(_ACTIONS_BY_KIND[card.kind])


class ActionMenu:
    """Overlay listing the actions of one card with a wrapping cursor."""

    def __init__(self, card: Card):
        self.card_id = card.id
        self.actions = actions_for(card)
        self.cursor = 0

    def __len__(self):
        return len(self.actions)

    @property
    def current(self) -> Optional[CardAction]:
        if not self.actions:
            return None
        return self.actions[self.cursor]

    def move_down(self) -> None:
        if self.actions:
            self.cursor = (self.cursor + 1) % len(self.actions)

    def move_up(self) -> None:
        if self.actions:
            self.cursor = (self.cursor - 1) % len(self.actions)

    def choose(self, index: int) -> CardAction:
        if not 0 <= index < len(self.actions):
            raise IndexError(f"No action {index} for card #{self.card_id}")
        self.cursor = index
        return self.actions[index]
