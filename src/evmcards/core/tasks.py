"""
One-shot background tasks (submissions, traces, receipt fetches, balance
refresh). Each task runs on its own daemon thread and posts exactly one
message to the session queue.
"""

import queue
import threading
from typing import Callable, List

from evmcards.utils.logging import get_logger

logger = get_logger("tasks")


class TaskRunner:
    """
    Run blocking work off the UI thread.

    ``work`` returns the message to post. If it raises, ``on_error`` turns the
    exception into the message instead, so every task reports back exactly
    once. With ``threaded=False`` the work runs inline, which keeps tests
    deterministic.
    """

    def __init__(self, outbox: queue.Queue, threaded: bool = True):
        self.outbox = outbox
        self.threaded = threaded
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()

    def run(self, name: str, work: Callable[[], object], on_error: Callable[[Exception], object]) -> None:
        if not self.threaded:
            self._execute(name, work, on_error)
            return
        thread = threading.Thread(
            target=self._execute,
            args=(name, work, on_error),
            name=f"evmcards-{name}",
            daemon=True,
        )
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()

    def _execute(self, name: str, work, on_error) -> None:
        try:
            message = work()
        except Exception as e:
            logger.debug(f"Task {name} failed: {e}")
            message = on_error(e)
        self.outbox.put(message)

    @property
    def active_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._threads if t.is_alive())

    def join(self, timeout: float = 5.0) -> None:
        """Wait for running tasks (tests and orderly shutdown)."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout=timeout)
