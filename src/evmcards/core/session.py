"""
Session: the UI-thread owner of the card store and the parameter form.

Blockchain work runs on worker threads (TaskRunner, PendingOperationTracker)
and reports through ``inbox``. Only ``pump()`` applies those messages, so the
store and the form have a single mutator and need no locks.

Card insertion follows call-site order. Every request reserves a slot when
it is made; completed slots wait in a reorder buffer until all earlier slots
have completed, then their cards are inserted in slot order.
"""

import queue
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence

from evmcards.abi.methods import ContractAbi, MethodRef
from evmcards.abi.validator import amount_to_wei
from evmcards.abi.values import Value
from evmcards.cards.actions import ActionMenu, CardAction, actions_for
from evmcards.cards.card import Card, CallPayload, CardKind, Severity, TransactionPayload, TxStatus
from evmcards.cards.modes import ModeStack
from evmcards.cards.render import call_to_json, logs_to_json, to_pretty_json
from evmcards.cards.store import CardStore
from evmcards.cards.tracers import TracerConfig, TracerKind
from evmcards.config import Config
from evmcards.forms.form import ParameterForm
from evmcards.utils.exceptions import (
    CardStateError,
    ClipboardUnavailableError,
    ExecutionError,
    ViewerUnavailableError,
    format_exception_message,
)
from evmcards.utils.logging import get_logger
from .messages import (
    AccountInfo,
    CallCompleted,
    ConnectionChanged,
    Notice,
    PollStalled,
    ReceiptResolved,
    SLOT_MESSAGES,
    TransactionSubmitted,
    ViewReady,
)
from .replay import CallTraceRequest, TraceRequest, TracerReplayController
from .tasks import TaskRunner
from .tracker import PendingOperationTracker
from .viewer import ExternalViewer, copy_to_clipboard

logger = get_logger("session")


def _error_severity(e: Exception) -> Severity:
    return Severity.WARNING if isinstance(e, CardStateError) else Severity.ERROR


@dataclass(frozen=True)
class Deployment:
    """A contract created by a deploy card."""
    card_id: int
    address: str
    abi: ContractAbi


class Session:
    """
    Wires the card engine together for one interactive run.

    Args:
        client: RpcClient (or any object with the same methods)
        config: timing and viewer settings
        viewer: callable showing text to the user; defaults to ExternalViewer
        clipboard: callable copying text; defaults to the system clipboard
        threaded: run one-shot tasks on threads (False runs them inline)
    """

    def __init__(
        self,
        client,
        config: Optional[Config] = None,
        viewer: Optional[Callable[[str], object]] = None,
        clipboard: Optional[Callable[[str], object]] = None,
        threaded: bool = True,
        abi: Optional[ContractAbi] = None,
    ):
        self.client = client
        self.config = config or Config()
        self.viewer = viewer or ExternalViewer(self.config.viewer)
        self.clipboard = clipboard or copy_to_clipboard
        self.abi = abi or ContractAbi()

        self.store = CardStore()
        self.modes = ModeStack()
        self.replay = TracerReplayController(self.store, self.modes)

        self.inbox: queue.Queue = queue.Queue()
        self.tasks = TaskRunner(self.inbox, threaded=threaded)
        self.tracker = PendingOperationTracker(
            client,
            self.inbox,
            interval=self.config.poll_interval,
            max_attempts=self.config.max_poll_attempts,
        )

        self.form: Optional[ParameterForm] = None
        self.form_method: Optional[MethodRef] = None
        self.form_abi: Optional[ContractAbi] = None
        self.connected: Optional[bool] = None
        self.account: Optional[AccountInfo] = None

        self._next_slot = 0
        self._next_insert = 0
        self._completed: Dict[int, object] = {}

        self.deployments: List[Deployment] = []
        self._deploy_slots: Dict[int, ContractAbi] = {}
        self._deploying: Dict[int, ContractAbi] = {}  # card id -> artifact

    # ------------------------------------------------------------------
    # Message pump (UI thread)
    # ------------------------------------------------------------------

    def pump(self, timeout: Optional[float] = None) -> int:
        """
        Apply every queued message.

        Args:
            timeout: wait up to this long for the first message

        Returns:
            Number of messages handled
        """
        handled = 0
        try:
            if timeout:
                self._handle(self.inbox.get(timeout=timeout))
                handled += 1
            while True:
                self._handle(self.inbox.get_nowait())
                handled += 1
        except queue.Empty:
            pass
        return handled

    @property
    def waiting_slots(self) -> int:
        """Requests whose cards are not inserted yet."""
        return self._next_slot - self._next_insert

    def _reserve(self) -> int:
        slot = self._next_slot
        self._next_slot += 1
        return slot

    def _handle(self, message) -> None:
        if isinstance(message, SLOT_MESSAGES):
            self._completed[message.slot] = message
            self._flush()
        elif isinstance(message, ReceiptResolved):
            abi = self._deploying.pop(message.card_id, None)
            if self.store.apply_receipt(message.card_id, message.receipt) and abi is not None:
                self._record_deployment(message.card_id, abi)
        elif isinstance(message, PollStalled):
            if self.store.mark_stalled(message.card_id):
                self._notice(
                    Severity.WARNING,
                    f"No receipt for {message.tx_hash} after {message.attempts} polls; "
                    f"use recheck {message.card_id} to keep waiting",
                )
        elif isinstance(message, ConnectionChanged):
            if message.connected != self.connected:
                logger.debug(f"Connection {'up' if message.connected else 'down'}: {message.reason or ''}")
            self.connected = message.connected
        elif isinstance(message, AccountInfo):
            self.account = message
            self.connected = True
        else:
            logger.warning(f"Unknown message {message!r}")

    def _flush(self) -> None:
        while self._next_insert in self._completed:
            message = self._completed.pop(self._next_insert)
            self._next_insert += 1
            self._apply(message)

    def _apply(self, message) -> None:
        deploy_abi = self._deploy_slots.pop(message.slot, None)
        if isinstance(message, CallCompleted):
            self.store.add(message.payload)
        elif isinstance(message, TransactionSubmitted):
            card = self.store.add(message.payload)
            if deploy_abi is not None:
                self._deploying[card.id] = deploy_abi
            self.tracker.track(card.id, message.payload.hash)
        elif isinstance(message, Notice):
            self.store.log(message.severity, message.message)
        elif isinstance(message, ViewReady):
            logger.debug(f"Showing {message.title}")
            self._show(message.text)

    def _record_deployment(self, card_id: int, abi: ContractAbi) -> None:
        payload = self.store.get(card_id).payload
        if payload.status is not TxStatus.SUCCESS:
            return
        name = abi.name or "Contract"
        if not payload.contract_address:
            self._notice(Severity.ERROR, f"No contract address in the receipt of {payload.hash}")
            return
        self.deployments.append(Deployment(card_id, payload.contract_address, abi))
        logger.info(f"{name} deployed at {payload.contract_address}")
        self._notice(Severity.SUCCESS, f"{name} deployed at {payload.contract_address}")

    def _notice(self, severity: Severity, text: str) -> None:
        slot = self._reserve()
        self._completed[slot] = Notice(slot, severity, text)
        self._flush()

    def _show(self, text: str) -> None:
        try:
            self.viewer(text)
        except ViewerUnavailableError as e:
            self._notice(Severity.WARNING, e.message)

    # ------------------------------------------------------------------
    # Parameter form
    # ------------------------------------------------------------------

    def open_form(self, method: MethodRef) -> ParameterForm:
        """Start collecting arguments for a method, replacing any open form."""
        if method.target is None and not method.is_deploy:
            raise CardStateError(f"{method.signature} has no target address")
        if self.form is not None and not self.form.is_closed:
            self.form.cancel()
        self.form = ParameterForm.for_method(method)
        self.form_method = method
        self.form_abi = None
        return self.form

    def open_deploy_form(self, abi: ContractAbi) -> ParameterForm:
        """
        Start collecting constructor arguments for deploying a contract artifact.

        Raises:
            ArtifactError: if the artifact carries no bytecode
        """
        form = self.open_form(abi.deploy_method())
        self.form_abi = abi
        return form

    def submit_form(self) -> bool:
        """
        Submit the open form.

        Returns:
            True if the form was READY and the method was invoked; False if a
            field is invalid (the form stays open with focus on it).
        """
        if self.form is None:
            raise CardStateError("No form is open")
        values = self.form.submit()
        if values is None:
            return False
        form, method, abi = self.form, self.form_method, self.form_abi
        self.cancel_form()
        self.invoke(method, values, form.amount, abi=abi)
        return True

    def cancel_form(self) -> None:
        if self.form is not None and not self.form.is_closed:
            self.form.cancel()
        self.form = None
        self.form_method = None
        self.form_abi = None

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def invoke(
        self,
        method: MethodRef,
        values: Sequence[Value],
        amount: Optional[Decimal] = None,
        abi: Optional[ContractAbi] = None,
    ) -> int:
        """
        Run a call (view methods), send a transaction, or deploy (constructors).

        Args:
            amount: ether sent along; must convert exactly to wei
            abi: for deployments, the artifact whose functions the new
                contract gets once its receipt arrives

        Returns:
            The reserved slot; its card appears after all earlier requests'.
        """
        # Converted before reserving, so a bad amount never leaves a slot unfilled
        value_wei = amount_to_wei(amount) if amount else 0
        slot = self._reserve()
        arguments = tuple(values)

        if method.is_deploy:
            label = f"deploy {abi.name}" if abi is not None and abi.name else method.signature
            if abi is not None:
                self._deploy_slots[slot] = abi
            self.tasks.run("deploy", lambda: self._deploy_task(slot, method, arguments, value_wei),
                           lambda e: self._failure(slot, label, e))
        elif method.is_view:
            self.tasks.run("call", lambda: self._call_task(slot, method, arguments),
                           lambda e: self._failure(slot, method.signature, e))
        else:
            self.tasks.run("transaction", lambda: self._transaction_task(slot, method, arguments, value_wei),
                           lambda e: self._failure(slot, method.signature, e))
        return slot

    def _call_task(self, slot: int, method: MethodRef, arguments) -> CallCompleted:
        payload = CallPayload(
            signature=method.signature,
            arguments=arguments,
            from_address=self.client.sender,
            to=method.target,
        )
        try:
            result = self.client.submit_call(method, arguments, method.target)
        except ExecutionError as e:
            # A revert is the call's outcome, not a task failure
            return CallCompleted(slot, replace(payload, error=e.message))
        return CallCompleted(slot, replace(payload, result=tuple(result)))

    def _transaction_task(self, slot: int, method: MethodRef, arguments, value_wei: int) -> TransactionSubmitted:
        tx_hash = self.client.submit_transaction(method, arguments, method.target, value_wei)
        return TransactionSubmitted(slot, TransactionPayload(
            hash=tx_hash,
            signature=method.signature,
            arguments=arguments,
            to=method.target,
            value_wei=value_wei,
        ))

    def _deploy_task(self, slot: int, method: MethodRef, arguments, value_wei: int) -> TransactionSubmitted:
        tx_hash = self.client.deploy(method, arguments, value_wei)
        return TransactionSubmitted(slot, TransactionPayload(
            hash=tx_hash,
            signature=method.signature,
            arguments=arguments,
            to=None,
            value_wei=value_wei,
        ))

    @staticmethod
    def _failure(slot: int, what: str, e: Exception) -> Notice:
        return Notice(slot, Severity.ERROR, f"{what}: {format_exception_message(e)}")

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def select_next(self) -> Optional[Card]:
        return self.store.select_next()

    def select_prev(self) -> Optional[Card]:
        return self.store.select_prev()

    def clear(self) -> None:
        self.modes.reset()
        self.store.clear()

    # ------------------------------------------------------------------
    # Card actions
    # ------------------------------------------------------------------

    def open_menu(self) -> Optional[ActionMenu]:
        return self.replay.open_menu()

    def perform(self, action: CardAction, card: Optional[Card] = None) -> None:
        """Run a card action on the menu's card (or the selected card)."""
        if card is None:
            menu = self.replay.menu
            card = self.store.get(menu.card_id) if menu is not None else self.store.selected
        if card is None:
            return
        try:
            self._perform(action, card)
        except (CardStateError, ClipboardUnavailableError) as e:
            self.modes.reset()
            self._notice(_error_severity(e), e.message)

    def _perform(self, action: CardAction, card: Card) -> None:
        if action not in actions_for(card):
            raise CardStateError(f"{action.title} is not available for {card.kind.value} cards", card_id=card.id)
        payload = card.payload
        if action is CardAction.DEBUG_TRACE:
            # Stays in the overlay: tracer selection comes next
            self.replay.begin_trace(card)
            return

        self.modes.reset()
        if action is CardAction.COPY_HASH:
            self.clipboard(payload.hash)
        elif action is CardAction.COPY_RESULT:
            if payload.error is not None:
                raise CardStateError(f"Call #{card.id} failed; nothing to copy", card_id=card.id)
            self.clipboard(", ".join(v.render() for v in payload.result or ()))
        elif action is CardAction.VIEW_AS_JSON:
            self._show(to_pretty_json(call_to_json(payload)))
        elif action is CardAction.VIEW_LOGS:
            if payload.is_pending:
                raise CardStateError(f"Transaction {payload.hash} is still pending", card_id=card.id)
            self._show(to_pretty_json(logs_to_json(payload, self.abi)))
        elif action is CardAction.VIEW_RECEIPT:
            self._fetch_receipt(payload.hash)
        elif action is CardAction.DEBUG_CALL:
            self._run_trace(self.replay.call_request(card))

    def _fetch_receipt(self, tx_hash: str) -> None:
        slot = self._reserve()
        self.tasks.run(
            "receipt",
            lambda: ViewReady(slot, f"receipt {tx_hash}", to_pretty_json(self.client.get_receipt_json(tx_hash))),
            lambda e: Notice(slot, Severity.WARNING, format_exception_message(e)),
        )

    def choose_tracer(self, kind: Optional[TracerKind] = None) -> TracerConfig:
        return self.replay.choose_tracer(kind)

    def toggle_tracer_option(self, name: str) -> bool:
        return self.replay.toggle_option(name)

    def confirm_trace(self) -> int:
        return self._run_trace(self.replay.confirm())

    def back(self) -> None:
        self.replay.back()

    def _run_trace(self, request) -> int:
        slot = self._reserve()

        def work() -> ViewReady:
            if isinstance(request, TraceRequest):
                title = f"{request.config.kind.tracer_name} {request.tx_hash}"
                result = self.client.trace_transaction(request.tx_hash, request.config)
            elif isinstance(request, CallTraceRequest):
                title = f"{request.config.kind.tracer_name} {request.signature}"
                result = self.client.trace_call(request.signature, request.arguments, request.to, request.config)
            else:
                raise TypeError(f"Unknown trace request: {request!r}")
            return ViewReady(slot, title, to_pretty_json(result))

        self.tasks.run(
            "trace",
            work,
            lambda e: Notice(slot, Severity.ERROR, f"Trace failed: {format_exception_message(e)}"),
        )
        return slot

    # ------------------------------------------------------------------
    # Pending transactions
    # ------------------------------------------------------------------

    def recheck(self, card_id: int) -> bool:
        """Resume polling for a stalled transaction card."""
        card = self.store.get(card_id)
        if card is None or card.kind is not CardKind.TRANSACTION:
            raise CardStateError(f"No transaction card #{card_id}", card_id=card_id)
        if not card.payload.is_pending:
            raise CardStateError(f"Transaction {card.payload.hash} is already {card.payload.status.value}",
                                 card_id=card_id)
        if self.tracker.is_tracking(card_id):
            return False
        self.store.mark_stalled(card_id, False)
        return self.tracker.track(card_id, card.payload.hash)

    # ------------------------------------------------------------------
    # Account / connectivity
    # ------------------------------------------------------------------

    def refresh_account(self) -> None:
        def work() -> AccountInfo:
            sender = self.client.sender
            balance = self.client.get_balance(sender) if sender else None
            return AccountInfo(sender, balance, self.client.chain_id())

        self.tasks.run("account", work, lambda e: ConnectionChanged(False, format_exception_message(e)))

    def pending_cards(self) -> List[Card]:
        return self.store.pending()

    def shutdown(self) -> None:
        self.tracker.shutdown()
        logger.debug("Session closed")

