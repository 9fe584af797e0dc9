"""
End-to-end tests of the card engine: form submission, background results,
receipt polling and debug replays, all against the in-memory client.
"""

import threading
import unittest
from decimal import Decimal

from eth_utils import to_checksum_address

from evmcards.abi.methods import MethodRef, parse_abi
from evmcards.abi.types import parse_type
from evmcards.abi.values import Value
from evmcards.cards import CardAction, CardKind, Severity, TracerKind, TxStatus, TracerSelect
from evmcards.config import Config
from evmcards.core.session import Session
from evmcards.utils.exceptions import ArtifactError, CardStateError, ExecutionError, OutOfRangeError

from fakes import RECIPIENT, TOKEN, FakeClient, mined, pump_until


class SessionTestCase(unittest.TestCase):
    threaded = True

    def setUp(self):
        self.client = FakeClient()
        self.shown = []
        self.copied = []
        self.session = Session(
            self.client,
            Config(poll_interval=0.01, max_poll_attempts=0),
            viewer=self.shown.append,
            clipboard=self.copied.append,
            threaded=self.threaded,
        )

    def tearDown(self):
        self.session.shutdown()

    def cards(self, kind=None):
        return [c for c in self.session.store if kind is None or c.kind is kind]


class TestTransferFlow(SessionTestCase):
    def test_transfer_becomes_pending_then_success(self):
        transfer = MethodRef.from_signature("transfer(address to, uint256 amount)", target=TOKEN)
        form = self.session.open_form(transfer)
        form.set_text(RECIPIENT)
        form.focus_next()
        form.set_text("100")

        self.assertTrue(self.session.submit_form())
        self.assertIsNone(self.session.form)
        self.assertTrue(pump_until(self.session, lambda: len(self.session.store) == 1))

        card = self.session.store.selected
        self.assertIs(card.kind, CardKind.TRANSACTION)
        self.assertIs(card.payload.status, TxStatus.PENDING)
        self.assertEqual(card.payload.to, to_checksum_address(TOKEN))
        self.assertEqual([v.data for v in card.payload.arguments], [to_checksum_address(RECIPIENT), 100])
        self.assertEqual(self.client.sent[0][0], "transfer(address,uint256)")

        self.client.receipts[card.payload.hash] = mined(card.payload.hash, status=1, gas_used=21000)
        self.assertTrue(pump_until(self.session, lambda: not card.is_pending))

        self.assertIs(card.payload.status, TxStatus.SUCCESS)
        self.assertEqual(card.payload.gas_used, 21000)
        self.assertEqual(self.session.pending_cards(), [])

    def test_invalid_form_is_not_sent(self):
        transfer = MethodRef.from_signature("transfer(address to, uint256 amount)", target=TOKEN)
        form = self.session.open_form(transfer)
        form.set_text(RECIPIENT)

        self.assertFalse(self.session.submit_form())

        self.assertIs(self.session.form, form)
        self.assertEqual(form.focused.label, "amount")
        self.assertEqual(self.client.sent, [])

    def test_payable_amount_is_sent_in_wei(self):
        deposit = MethodRef.from_signature("deposit()", target=TOKEN, is_payable=True)
        form = self.session.open_form(deposit)
        form.set_text("0.25")
        self.session.submit_form()
        pump_until(self.session, lambda: len(self.session.store) == 1)
        self.assertEqual(self.client.sent[0][3], 250000000000000000)
        self.assertEqual(self.session.store.selected.payload.value_wei, 250000000000000000)

    def test_unsendable_amount_keeps_form_open(self):
        deposit = MethodRef.from_signature("deposit()", target=TOKEN, is_payable=True)
        for text in ("1e80", "0.0000000000000000001"):
            with self.subTest(amount=text):
                form = self.session.open_form(deposit)
                form.set_text(text)

                self.assertFalse(self.session.submit_form())

                self.assertIs(self.session.form, form)
                self.assertEqual(form.focused.label, "value")
                self.assertIsInstance(form.focused.error, OutOfRangeError)
        self.assertEqual(self.client.sent, [])
        self.assertEqual(self.session.waiting_slots, 0)

    def test_out_of_range_amount_does_not_block_later_cards(self):
        deposit = MethodRef.from_signature("deposit()", target=TOKEN, is_payable=True)
        ping = MethodRef.from_signature("ping()(uint256)", target=TOKEN, is_view=True)

        with self.assertRaises(OutOfRangeError):
            self.session.invoke(deposit, [], Decimal("1e80"))
        self.session.invoke(ping, [])

        self.assertTrue(pump_until(self.session, lambda: len(self.session.store) == 1))
        self.assertEqual(self.session.store.selected.payload.signature, "ping()")
        self.assertEqual(self.client.sent, [])

    def test_method_without_target(self):
        with self.assertRaises(CardStateError):
            self.session.open_form(MethodRef.from_signature("ping()"))


class TestOrdering(SessionTestCase):
    def test_cards_follow_call_order(self):
        slow = MethodRef.from_signature("slow()(uint256)", target=TOKEN, is_view=True)
        fast = MethodRef.from_signature("fast()(uint256)", target=TOKEN, is_view=True)
        gate = threading.Event()
        self.client.gates[slow.signature] = gate
        self.client.call_results[slow.signature] = [Value(parse_type("uint256"), 1)]
        self.client.call_results[fast.signature] = [Value(parse_type("uint256"), 2)]

        self.session.invoke(slow, [])
        self.session.invoke(fast, [])

        # fast() finishes first but waits behind slow()
        self.assertEqual(self.session.pump(timeout=2), 1)
        self.assertEqual(len(self.session.store), 0)
        self.assertEqual(self.session.waiting_slots, 2)

        gate.set()
        self.assertTrue(pump_until(self.session, lambda: len(self.session.store) == 2))
        self.assertEqual([c.payload.signature for c in self.session.store], ["slow()", "fast()"])
        self.assertEqual(self.session.store.selected.payload.result[0].data, 2)

    def test_reverted_call_becomes_failed_card(self):
        method = MethodRef.from_signature("owner()(address)", target=TOKEN, is_view=True)
        self.client.call_results[method.signature] = ExecutionError("execution reverted: not ready")
        self.session.invoke(method, [])
        pump_until(self.session, lambda: len(self.session.store) == 1)
        card = self.session.store.selected
        self.assertIs(card.kind, CardKind.CALL)
        self.assertEqual(card.payload.error, "execution reverted: not ready")

    def test_submission_failure_becomes_error_log(self):
        method = MethodRef.from_signature("mint(uint256)", target=TOKEN)

        def refuse(*args):
            raise ExecutionError("insufficient funds")

        self.client.submit_transaction = refuse
        self.session.invoke(method, [Value(parse_type("uint256"), 1)])
        pump_until(self.session, lambda: len(self.session.store) == 1)
        card = self.session.store.selected
        self.assertIs(card.kind, CardKind.LOG)
        self.assertIs(card.payload.severity, Severity.ERROR)
        self.assertEqual(card.payload.message, "mint(uint256): insufficient funds")


class TestStalledTransactions(SessionTestCase):
    def test_stall_then_recheck(self):
        self.session.tracker.max_attempts = 3
        method = MethodRef.from_signature("mint()", target=TOKEN)
        self.session.invoke(method, [])
        self.assertTrue(pump_until(self.session, lambda: len(self.session.store) == 2))

        tx_card, notice = self.cards()
        self.assertTrue(tx_card.payload.stalled)
        self.assertTrue(tx_card.is_pending)
        self.assertIs(notice.payload.severity, Severity.WARNING)
        self.assertIn(f"recheck {tx_card.id}", notice.payload.message)

        self.client.receipts[tx_card.payload.hash] = mined(tx_card.payload.hash, status=0)
        self.assertTrue(self.session.recheck(tx_card.id))
        self.assertFalse(tx_card.payload.stalled)
        self.assertTrue(pump_until(self.session, lambda: not tx_card.is_pending))
        self.assertIs(tx_card.payload.status, TxStatus.FAILED)

        with self.assertRaises(CardStateError):
            self.session.recheck(tx_card.id)


class TestCardActions(SessionTestCase):
    threaded = False

    def add_mined_transaction(self):
        self.session.invoke(MethodRef.from_signature("mint()", target=TOKEN), [])
        self.session.pump()
        card = self.session.store.selected
        self.client.receipts[card.payload.hash] = mined(card.payload.hash)
        self.assertTrue(pump_until(self.session, lambda: not card.is_pending))
        return card

    def test_debug_trace_replays_original_hash(self):
        card = self.add_mined_transaction()
        self.assertIsNotNone(self.session.open_menu())

        self.session.perform(CardAction.DEBUG_TRACE)
        self.assertIsInstance(self.session.modes.current, TracerSelect)
        self.session.choose_tracer(TracerKind.CALL)
        self.session.toggle_tracer_option("onlyTopCall")
        self.session.confirm_trace()
        self.session.pump()

        self.assertEqual(self.client.traces, [
            ("tx", card.payload.hash, {"tracer": "callTracer",
                                       "tracerConfig": {"onlyTopCall": True, "withLog": True}}),
        ])
        self.assertEqual(len(self.client.sent), 1)
        self.assertEqual(len(self.shown), 1)
        self.assertTrue(self.session.modes.is_browsing)

    def test_pending_transaction_trace_is_refused(self):
        self.session.invoke(MethodRef.from_signature("mint()", target=TOKEN), [])
        self.session.pump()
        card = self.session.store.selected

        self.session.perform(CardAction.DEBUG_TRACE, card)

        notice = self.session.store.selected
        self.assertIs(notice.payload.severity, Severity.WARNING)
        self.assertIn("still pending", notice.payload.message)
        self.assertTrue(self.session.modes.is_browsing)

    def test_copy_hash_and_view_receipt(self):
        card = self.add_mined_transaction()
        self.session.perform(CardAction.COPY_HASH, card)
        self.assertEqual(self.copied, [card.payload.hash])

        self.session.perform(CardAction.VIEW_RECEIPT, card)
        self.session.pump()
        self.assertIn(card.payload.hash, self.shown[-1])

    def test_call_card_actions(self):
        method = MethodRef.from_signature("total()(uint256)", target=TOKEN, is_view=True)
        self.client.call_results[method.signature] = [Value(parse_type("uint256"), 42)]
        self.session.invoke(method, [])
        self.session.pump()
        card = self.session.store.selected

        self.session.perform(CardAction.COPY_RESULT, card)
        self.session.perform(CardAction.VIEW_AS_JSON, card)
        self.session.perform(CardAction.DEBUG_CALL, card)
        self.session.pump()

        self.assertEqual(self.copied, ["42"])
        self.assertIn('"total()"', self.shown[0])
        self.assertEqual(self.client.traces[0][:3], ("call", "total()", to_checksum_address(TOKEN)))

    def test_action_for_wrong_kind_is_reported(self):
        card = self.session.store.log(Severity.INFO, "hello")
        self.session.perform(CardAction.COPY_HASH, card)
        self.assertIn("not available", self.session.store.selected.payload.message)

    def test_unknown_trace_request_becomes_error_log(self):
        self.session._run_trace("bogus")
        self.assertTrue(pump_until(self.session, lambda: len(self.session.store) == 1))
        card = self.session.store.selected
        self.assertIs(card.payload.severity, Severity.ERROR)
        self.assertIn("Unknown trace request", card.payload.message)
        self.assertEqual(self.client.traces, [])

    def test_account_refresh(self):
        self.session.refresh_account()
        self.session.pump()
        self.assertTrue(self.session.connected)
        self.assertEqual(self.session.account.chain_id, 31337)
        self.assertEqual(self.session.account.balance_wei, 10 ** 18)


COUNTER_ARTIFACT = {
    "contractName": "Counter",
    "abi": [
        {"type": "constructor", "stateMutability": "nonpayable",
         "inputs": [{"name": "start", "type": "uint256"}]},
        {"type": "function", "name": "count", "stateMutability": "view",
         "inputs": [], "outputs": [{"name": "", "type": "uint256"}]},
    ],
    "bytecode": {"object": "0x6080604052"},
}
DEPLOYED = to_checksum_address("0x" + "c" * 40)


class TestDeployment(SessionTestCase):
    def deploy_counter(self):
        abi = parse_abi(COUNTER_ARTIFACT)
        form = self.session.open_deploy_form(abi)
        self.assertEqual([f.label for f in form.fields], ["start"])
        form.set_text("5")
        self.assertTrue(self.session.submit_form())
        self.assertTrue(pump_until(self.session, lambda: len(self.session.store) == 1))
        return abi, self.session.store.selected

    def test_deployment_card_then_contract_address(self):
        abi, card = self.deploy_counter()

        self.assertIs(card.kind, CardKind.TRANSACTION)
        self.assertTrue(card.payload.is_deployment)
        self.assertIsNone(card.payload.to)
        self.assertEqual(self.client.sent[0][:3], ("constructor(uint256)", card.payload.arguments, None))
        self.assertEqual(self.client.deployed, ["0x6080604052"])

        self.client.receipts[card.payload.hash] = mined(card.payload.hash, contract_address=DEPLOYED)
        self.assertTrue(pump_until(self.session, lambda: len(self.session.deployments) == 1))

        self.assertIs(card.payload.status, TxStatus.SUCCESS)
        self.assertEqual(card.payload.contract_address, DEPLOYED)
        deployment = self.session.deployments[0]
        self.assertEqual((deployment.card_id, deployment.address), (card.id, DEPLOYED))
        self.assertIs(deployment.abi, abi)
        notice = self.session.store.selected
        self.assertIs(notice.payload.severity, Severity.SUCCESS)
        self.assertEqual(notice.payload.message, f"Counter deployed at {DEPLOYED}")

    def test_reverted_deployment_records_nothing(self):
        _, card = self.deploy_counter()
        self.client.receipts[card.payload.hash] = mined(card.payload.hash, status=0)
        self.assertTrue(pump_until(self.session, lambda: not card.is_pending))

        self.assertIs(card.payload.status, TxStatus.FAILED)
        self.assertEqual(self.session.deployments, [])
        self.assertEqual(len(self.session.store), 1)

    def test_missing_contract_address_is_reported(self):
        _, card = self.deploy_counter()
        self.client.receipts[card.payload.hash] = mined(card.payload.hash)
        self.assertTrue(pump_until(self.session, lambda: len(self.session.store) == 2))

        self.assertEqual(self.session.deployments, [])
        self.assertIs(self.session.store.selected.payload.severity, Severity.ERROR)

    def test_plain_abi_cannot_be_deployed(self):
        abi = parse_abi(COUNTER_ARTIFACT["abi"])
        with self.assertRaises(ArtifactError):
            self.session.open_deploy_form(abi)
        self.assertIsNone(self.session.form)


if __name__ == '__main__':
    unittest.main()
