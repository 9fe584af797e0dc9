"""
Pending Operation Tracker

Polls for the receipt of every pending transaction, one daemon thread per
transaction. Pollers share nothing but the outbox queue and the stop event,
so a slow or failing lookup for one hash never delays another.

Poll outcome                     Posted message
-------------------------------  ---------------------------------------
receipt found                    ReceiptResolved(card_id, receipt)
transport failure                ConnectionChanged(False), keep polling
any other lookup error           logged, counted as "not yet"
first success after a failure    ConnectionChanged(True)
max_attempts "not yet" answers   PollStalled(card_id, hash, attempts)

Transport failures do not count towards ``max_attempts``; ``0`` disables the
cap.
"""

import queue
import threading
from typing import Dict

from evmcards.utils.exceptions import RPCConnectionError, format_exception_message
from evmcards.utils.logging import TRACE, get_logger
from .messages import ConnectionChanged, PollStalled, ReceiptResolved

logger = get_logger("tracker")


class PendingOperationTracker:
    def __init__(self, client, outbox: queue.Queue, interval: float = 1.0, max_attempts: int = 600):
        self.client = client
        self.outbox = outbox
        self.interval = interval
        self.max_attempts = max_attempts
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._pollers: Dict[int, threading.Thread] = {}

    def track(self, card_id: int, tx_hash: str) -> bool:
        """
        Start polling for a transaction card.

        Returns:
            False if the tracker is shut down or the card is already polled.
        """
        if self._stop.is_set():
            logger.debug(f"Tracker is shut down, not tracking {tx_hash}")
            return False
        with self._lock:
            existing = self._pollers.get(card_id)
            if existing is not None and existing.is_alive():
                return False
            thread = threading.Thread(
                target=self._poll,
                args=(card_id, tx_hash),
                name=f"evmcards-poll-{card_id}",
                daemon=True,
            )
            self._pollers[card_id] = thread
        logger.debug(f"Tracking {tx_hash} for card #{card_id}")
        thread.start()
        return True

    def is_tracking(self, card_id: int) -> bool:
        with self._lock:
            thread = self._pollers.get(card_id)
            return thread is not None and thread.is_alive()

    @property
    def active_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._pollers.values() if t.is_alive())

    def shutdown(self) -> None:
        """Abandon all pollers. In-flight lookups finish on their own."""
        self._stop.set()
        with self._lock:
            count = sum(1 for t in self._pollers.values() if t.is_alive())
            self._pollers.clear()
        if count:
            logger.debug(f"Abandoned {count} pending pollers")

    def _poll(self, card_id: int, tx_hash: str) -> None:
        attempts = 0
        disconnected = False
        while not self._stop.is_set():
            try:
                receipt = self.client.get_receipt(tx_hash)
            except RPCConnectionError as e:
                if not disconnected:
                    logger.warning(f"Lost connection while polling {tx_hash}: {e.message}")
                    self.outbox.put(ConnectionChanged(False, e.message))
                    disconnected = True
                if self._stop.wait(self.interval):
                    break
                continue
            except Exception as e:
                # Malformed replies and untranslated client errors count as "not yet"
                logger.warning(f"Receipt lookup for {tx_hash} failed: {format_exception_message(e)}")
                logger.debug("Lookup failure details", exc_info=True)
                receipt = None

            if disconnected:
                disconnected = False
                logger.info("Connection restored")
                self.outbox.put(ConnectionChanged(True))

            if receipt is not None:
                logger.debug(f"Receipt for {tx_hash} after {attempts + 1} polls")
                self._finish(card_id)
                self.outbox.put(ReceiptResolved(card_id, receipt))
                return

            attempts += 1
            logger.log(TRACE, f"No receipt for {tx_hash} yet (attempt {attempts})")
            if self.max_attempts and attempts >= self.max_attempts:
                logger.warning(f"Giving up on {tx_hash} after {attempts} polls")
                self._finish(card_id)
                self.outbox.put(PollStalled(card_id, tx_hash, attempts))
                return

            if self._stop.wait(self.interval):
                break

    def _finish(self, card_id: int) -> None:
        # Deregister before posting, so a recheck issued on the message finds no live poller
        with self._lock:
            if self._pollers.get(card_id) is threading.current_thread():
                del self._pollers[card_id]
