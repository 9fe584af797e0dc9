"""
Tests for the pending operation tracker. These run real poller threads with
a very short poll interval.
"""

import queue
import unittest

from evmcards.core.messages import ConnectionChanged, PollStalled, ReceiptResolved
from evmcards.core.tracker import PendingOperationTracker
from evmcards.utils.exceptions import ExecutionError, RPCConnectionError

from fakes import FakeClient, mined

TX_A = "0x" + "0a" * 32
TX_B = "0x" + "0b" * 32


class TestPendingOperationTracker(unittest.TestCase):
    def setUp(self):
        self.client = FakeClient()
        self.outbox = queue.Queue()
        self.tracker = PendingOperationTracker(self.client, self.outbox, interval=0.01, max_attempts=0)

    def tearDown(self):
        self.tracker.shutdown()

    def next_message(self):
        return self.outbox.get(timeout=5)

    def test_receipt_is_posted_once(self):
        self.client.receipts[TX_A] = mined(TX_A)
        self.assertTrue(self.tracker.track(1, TX_A))

        message = self.next_message()

        self.assertEqual(message, ReceiptResolved(1, mined(TX_A)))
        with self.assertRaises(queue.Empty):
            self.outbox.get(timeout=0.1)
        self.assertFalse(self.tracker.is_tracking(1))

    def test_polls_until_mined(self):
        self.tracker.track(1, TX_A)
        with self.assertRaises(queue.Empty):
            self.outbox.get(timeout=0.1)
        self.client.receipts[TX_A] = mined(TX_A)
        self.assertIsInstance(self.next_message(), ReceiptResolved)
        self.assertGreater(self.client.polls[TX_A], 1)

    def test_pollers_are_independent(self):
        self.tracker.track(1, TX_A)
        self.tracker.track(2, TX_B)
        self.client.receipts[TX_B] = mined(TX_B)
        self.assertEqual(self.next_message().card_id, 2)
        self.assertTrue(self.tracker.is_tracking(1))

    def test_duplicate_track_is_refused(self):
        self.assertTrue(self.tracker.track(1, TX_A))
        self.assertFalse(self.tracker.track(1, TX_A))
        self.assertEqual(self.tracker.active_count, 1)

    def test_transport_errors_report_connectivity(self):
        self.client.receipt_errors = [RPCConnectionError("refused"), RPCConnectionError("refused")]
        self.client.receipts[TX_A] = mined(TX_A)
        self.tracker.track(1, TX_A)

        self.assertEqual(self.next_message(), ConnectionChanged(False, "refused"))
        self.assertEqual(self.next_message(), ConnectionChanged(True))
        self.assertIsInstance(self.next_message(), ReceiptResolved)

    def test_lookup_errors_count_as_not_yet(self):
        self.client.receipt_errors = [ExecutionError("bad reply")]
        self.client.receipts[TX_A] = mined(TX_A)
        self.tracker.track(1, TX_A)
        self.assertIsInstance(self.next_message(), ReceiptResolved)

    def test_unexpected_lookup_errors_keep_polling(self):
        self.client.receipt_errors = [TypeError("'NoneType' object is not subscriptable"), KeyError("status")]
        self.client.receipts[TX_A] = mined(TX_A)
        self.tracker.track(1, TX_A)

        self.assertEqual(self.next_message(), ReceiptResolved(1, mined(TX_A)))
        self.assertEqual(self.client.polls[TX_A], 3)
        self.assertFalse(self.tracker.is_tracking(1))

    def test_unexpected_lookup_errors_count_towards_cap(self):
        self.tracker.max_attempts = 2
        self.client.receipt_errors = [TypeError("bad reply"), ValueError("bad reply")]
        self.tracker.track(1, TX_A)

        self.assertEqual(self.next_message(), PollStalled(1, TX_A, 2))
        self.assertFalse(self.tracker.is_tracking(1))

    def test_gives_up_after_max_attempts(self):
        self.tracker.max_attempts = 3
        self.tracker.track(1, TX_A)

        message = self.next_message()

        self.assertEqual(message, PollStalled(1, TX_A, 3))
        self.assertEqual(self.client.polls[TX_A], 3)
        self.assertFalse(self.tracker.is_tracking(1))
        # A stalled card can be tracked again
        self.client.receipts[TX_A] = mined(TX_A)
        self.assertTrue(self.tracker.track(1, TX_A))
        self.assertIsInstance(self.next_message(), ReceiptResolved)

    def test_transport_errors_do_not_count_towards_cap(self):
        self.tracker.max_attempts = 2
        self.client.receipt_errors = [RPCConnectionError("down")] * 3
        self.tracker.track(1, TX_A)

        messages = [self.next_message() for _ in range(3)]

        self.assertEqual(messages[-1], PollStalled(1, TX_A, 2))
        self.assertEqual(self.client.polls[TX_A], 5)

    def test_shutdown_stops_tracking(self):
        self.tracker.track(1, TX_A)
        self.tracker.shutdown()
        self.assertFalse(self.tracker.track(2, TX_B))
        self.assertEqual(self.tracker.active_count, 0)


if __name__ == '__main__':
    unittest.main()
