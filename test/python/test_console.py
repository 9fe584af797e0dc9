"""
Tests for the line-oriented console.
"""

import io
import json
import os
import tempfile
import unittest

from eth_utils import to_checksum_address

from evmcards.cards import TracerConfigEdit, TxStatus
from evmcards.config import Config
from evmcards.console import CardConsole
from evmcards.core.session import Session

from fakes import RECIPIENT, TOKEN, FakeClient, mined, pump_until

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


class TestCardConsole(unittest.TestCase):
    def setUp(self):
        self.client = FakeClient()
        self.shown = []
        self.session = Session(
            self.client,
            Config(poll_interval=0.01),
            viewer=self.shown.append,
            clipboard=lambda text: None,
            threaded=False,
        )
        self.out = io.StringIO()
        self.console = CardConsole(self.session, stdin=io.StringIO(), stdout=self.out)

    def tearDown(self):
        self.session.shutdown()

    def run_line(self, line):
        stop = self.console.onecmd(line)
        self.console.postcmd(stop, line)
        return stop

    def test_send_fills_fields_in_order(self):
        self.run_line(f"send transfer(address,uint256) {TOKEN}")
        self.assertIn("arg0", self.console.prompt)

        self.run_line(RECIPIENT)
        self.assertIn("arg1", self.console.prompt)
        self.run_line("100")

        self.assertIsNone(self.session.form)
        self.assertEqual(len(self.client.sent), 1)
        self.assertIn("pending", self.out.getvalue())

    def test_invalid_text_keeps_focus(self):
        self.run_line(f"send transfer(address,uint256) {TOKEN}")
        self.run_line("nope")
        self.assertEqual(self.session.form.focus_index, 0)
        self.assertIn("Expected 0x followed by 40 hex characters", self.out.getvalue())

    def test_trace_commands(self):
        self.run_line(f"send mint() {TOKEN}")
        card = self.session.store.selected
        self.client.receipts[card.payload.hash] = mined(card.payload.hash)
        self.assertTrue(pump_until(self.session, lambda: card.payload.status is TxStatus.SUCCESS))

        self.run_line("menu")
        self.run_line("pick 2")
        self.run_line("tracer prestate")
        self.assertIsInstance(self.session.modes.current, TracerConfigEdit)
        self.run_line("option diffMode")
        self.run_line("option nonsense")
        self.run_line("confirm")

        self.assertEqual(self.client.traces[0][2], {"tracer": "prestateTracer", "tracerConfig": {"diffMode": False}})
        self.assertIn("has no option 'nonsense'", self.out.getvalue())
        self.assertEqual(len(self.shown), 1)

    def test_form_text_that_looks_like_a_command(self):
        self.run_line(f"send ping() {TOKEN}")
        self.run_line(f"send setName(string) {TOKEN}")

        self.run_line("clear the name")

        self.assertIsNone(self.session.form)
        self.assertEqual(self.client.sent[1][0], "setName(string)")
        self.assertEqual(self.client.sent[1][1][0].data, "clear the name")
        self.assertEqual(len(self.session.store), 2)
        self.assertNotIn("Cleared", self.out.getvalue())

    def test_command_words_fill_fields(self):
        self.run_line(f"send setPair(string,string) {TOKEN}")

        self.assertFalse(self.run_line("exit"))
        self.run_line("help me")

        self.assertIsNone(self.session.form)
        self.assertEqual([v.data for v in self.client.sent[0][1]], ["exit", "help me"])

    def test_escaped_commands_run_while_form_is_open(self):
        self.run_line(f"send setName(string) {TOKEN}")

        self.run_line("!cards")
        self.assertIn("No cards.", self.out.getvalue())
        self.assertIsNotNone(self.session.form)

        self.run_line("set next")
        self.assertEqual(self.session.form.focused.raw_text, "next")
        self.assertTrue(self.run_line("!exit"))
        self.assertEqual(self.client.sent, [])

    def test_deploy_then_use_contract(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "Counter.json")
            with open(path, "w") as f:
                json.dump(COUNTER_ARTIFACT, f)
            self.run_line(f"deploy {path}")

        self.assertIn("start", self.console.prompt)
        self.run_line("5")

        card = self.session.store.selected
        self.assertIsNone(card.payload.to)
        self.assertEqual(self.client.deployed, ["0x6080604052"])
        self.client.receipts[card.payload.hash] = mined(card.payload.hash, contract_address=DEPLOYED)
        self.assertTrue(pump_until(self.session, lambda: len(self.session.deployments) == 1))
        self.run_line("")

        self.assertEqual([(m.signature, m.target) for m in self.console.methods], [("count()", DEPLOYED)])
        self.assertIn("contract:", self.out.getvalue())
        self.assertIn(f"Counter deployed at {DEPLOYED}", self.out.getvalue())

    def test_deploy_needs_bytecode(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "Counter.abi")
            with open(path, "w") as f:
                json.dump(COUNTER_ARTIFACT["abi"], f)
            self.run_line(f"deploy {path}")

        self.assertIsNone(self.session.form)
        self.assertIn("Counter has no bytecode to deploy", self.out.getvalue())

    def test_unknown_command(self):
        self.run_line("frobnicate")
        self.assertIn("Unknown command", self.out.getvalue())

    def test_exit(self):
        self.assertTrue(self.run_line("exit"))


if __name__ == '__main__':
    unittest.main()
