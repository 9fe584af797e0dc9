"""
Tests for the RPC client's receipt parsing and transaction building. The
node is never contacted: the fetch and send steps are replaced per test.
"""

import unittest

from evmcards.abi.methods import MethodRef, parse_abi
from evmcards.abi.validator import validate
from evmcards.core.rpc_client import RpcClient
from evmcards.utils.exceptions import ExecutionError

TX = "0x" + "ab" * 32
CREATED = "0x" + "C" * 40


class TestReceipts(unittest.TestCase):
    def setUp(self):
        self.client = RpcClient("http://127.0.0.1:1")

    def receipt_for(self, raw):
        self.client._fetch_receipt = lambda tx_hash: raw
        return self.client.get_receipt(TX)

    def test_hex_quantities(self):
        receipt = self.receipt_for({
            "status": "0x1", "gasUsed": "0x5208", "blockNumber": "0x10",
            "logs": [], "contractAddress": CREATED,
        })
        self.assertTrue(receipt.succeeded)
        self.assertEqual((receipt.gas_used, receipt.block_number), (21000, 16))
        self.assertEqual(receipt.contract_address, CREATED)

    def test_missing_status_is_not_success(self):
        receipt = self.receipt_for({"status": None, "gasUsed": 21000, "blockNumber": 3, "logs": None})
        self.assertEqual(receipt.status, 0)
        self.assertEqual(receipt.logs, ())

    def test_state_root_receipt_is_success(self):
        receipt = self.receipt_for({"root": "0x" + "11" * 32, "gasUsed": 21000, "blockNumber": 3})
        self.assertEqual(receipt.status, 1)

    def test_sparse_receipt(self):
        receipt = self.receipt_for({})
        self.assertEqual((receipt.status, receipt.gas_used, receipt.block_number), (0, 0, 0))
        self.assertIsNone(receipt.contract_address)

    def test_pending_is_none(self):
        self.assertIsNone(self.receipt_for(None))


class TestDeploy(unittest.TestCase):
    def setUp(self):
        self.client = RpcClient("http://127.0.0.1:1")
        self.sent = []

        def send(tx, what):
            self.sent.append((tx, what))
            return TX

        self.client._send = send

    def test_creation_transaction_has_no_recipient(self):
        abi = parse_abi({
            "abi": [{"type": "constructor", "inputs": [{"name": "start", "type": "uint256"}]}],
            "bytecode": {"object": "0x6080"},
        })
        method = abi.deploy_method()

        tx_hash = self.client.deploy(method, [validate(method.input_types[0], "1")], value_wei=5)

        tx, what = self.sent[0]
        self.assertEqual(tx_hash, TX)
        self.assertNotIn("to", tx)
        self.assertEqual(tx["data"], "0x6080" + "00" * 31 + "01")
        self.assertEqual(tx["value"], 5)
        self.assertEqual(what, "constructor(uint256)")

    def test_regular_method_cannot_deploy(self):
        with self.assertRaises(ExecutionError):
            self.client.deploy(MethodRef.from_signature("ping()"), [])
        self.assertEqual(self.sent, [])


if __name__ == '__main__':
    unittest.main()
