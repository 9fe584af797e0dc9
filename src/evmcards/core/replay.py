"""
Tracer Replay Controller

Walks the user from a card's action menu to a debug replay request:

    MenuOpen --DEBUG_TRACE--> TracerSelect --choose--> TracerConfigEdit --confirm--> TraceRequest
    MenuOpen --DEBUG_CALL--> CallTraceRequest (call tracer defaults, no config step)

Requests always target the original transaction hash or the original call
arguments. Nothing is ever resubmitted.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from evmcards.abi.values import Value
from evmcards.cards.actions import ActionMenu
from evmcards.cards.card import Card, CardKind
from evmcards.cards.modes import MenuOpen, ModeStack, TracerConfigEdit, TracerSelect
from evmcards.cards.store import CardStore
from evmcards.cards.tracers import TracerConfig, TracerKind
from evmcards.utils.exceptions import CardStateError
from evmcards.utils.logging import get_logger

logger = get_logger("replay")


@dataclass(frozen=True)
class TraceRequest:
    card_id: int
    tx_hash: str
    config: TracerConfig


@dataclass(frozen=True)
class CallTraceRequest:
    card_id: int
    signature: str
    arguments: Tuple[Value, ...]
    to: str
    config: TracerConfig


class TracerReplayController:
    def __init__(self, store: CardStore, modes: ModeStack):
        self.store = store
        self.modes = modes

    # ------------------------------------------------------------------
    # Menu
    # ------------------------------------------------------------------

    def open_menu(self, card: Optional[Card] = None) -> Optional[ActionMenu]:
        """Open the action menu of a card (the selected one by default)."""
        card = card or self.store.selected
        if card is None:
            return None
        menu = ActionMenu(card)
        if not menu.actions:
            return None
        self.modes.reset()
        self.modes.push(MenuOpen(card.id, menu))
        return menu

    @property
    def menu(self) -> Optional[ActionMenu]:
        mode = self.modes.current
        return mode.menu if isinstance(mode, MenuOpen) else None

    def back(self) -> None:
        self.modes.pop()

    def close(self) -> None:
        self.modes.reset()

    # ------------------------------------------------------------------
    # Transaction replay
    # ------------------------------------------------------------------

    def begin_trace(self, card: Card) -> TracerSelect:
        """Open tracer selection for a finalized transaction card."""
        if card.kind is not CardKind.TRANSACTION:
            raise CardStateError(f"Card #{card.id} is not a transaction", card_id=card.id)
        if card.payload.is_pending:
            raise CardStateError(
                f"Transaction {card.payload.hash} is still pending; trace it once it is mined",
                card_id=card.id,
            )
        return self.modes.push(TracerSelect(card.id))

    def choose_tracer(self, kind: Optional[TracerKind] = None) -> TracerConfig:
        """Pick a tracer (the highlighted one by default) and open its config editor."""
        mode = self.modes.current
        if not isinstance(mode, TracerSelect):
            raise CardStateError("No tracer selection is open")
        if kind is not None:
            mode.cursor = mode.choices.index(kind)
        config = TracerConfig.defaults(mode.current)
        self.modes.push(TracerConfigEdit(mode.card_id, config))
        return config

    def toggle_option(self, name: str) -> bool:
        return self._editing().config.toggle(name)

    def confirm(self) -> TraceRequest:
        """Close the overlays and build the replay request for the original hash."""
        mode = self._editing()
        card = self.store.get(mode.card_id)
        self.modes.reset()
        if card is None:
            raise CardStateError(f"Card #{mode.card_id} no longer exists", card_id=mode.card_id)
        logger.debug(f"Trace {card.payload.hash} with {mode.config.kind.tracer_name} {mode.config.options}")
        return TraceRequest(card.id, card.payload.hash, mode.config)

    def _editing(self) -> TracerConfigEdit:
        mode = self.modes.current
        if not isinstance(mode, TracerConfigEdit):
            raise CardStateError("No tracer configuration is open")
        return mode

    # ------------------------------------------------------------------
    # Call replay
    # ------------------------------------------------------------------

    def call_request(self, card: Card) -> CallTraceRequest:
        if card.kind is not CardKind.CALL:
            raise CardStateError(f"Card #{card.id} is not a call", card_id=card.id)
        if not card.payload.to:
            raise CardStateError(f"Card #{card.id} has no target address", card_id=card.id)
        self.modes.reset()
        return CallTraceRequest(
            card_id=card.id,
            signature=card.payload.signature,
            arguments=card.payload.arguments,
            to=card.payload.to,
            config=TracerConfig.defaults(TracerKind.CALL),
        )
