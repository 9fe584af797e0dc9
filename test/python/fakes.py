"""
In-memory stand-ins for RpcClient and helpers shared by the test modules.
"""

import threading
import time
from collections import defaultdict

from evmcards.cards.card import Receipt
from evmcards.utils.exceptions import ExecutionError

SENDER = "0x" + "1" * 40
TOKEN = "0x" + "2" * 40
RECIPIENT = "0x" + "a" * 40


class FakeClient:
    """
    Records every request and answers from canned data.

    ``receipts`` maps a transaction hash to its Receipt; a hash without an
    entry is still pending. ``receipt_errors`` are raised by get_receipt, one
    per poll, before it starts answering. ``gates`` hold a call until the
    matching event is set.
    """

    def __init__(self, sender=SENDER):
        self.rpc_url = "http://fake-node:8545"
        self.sender = sender
        self.receipts = {}
        self.receipt_errors = []
        self.call_results = {}
        self.gates = {}
        self.calls = []
        self.sent = []
        self.deployed = []
        self.traces = []
        self.polls = defaultdict(int)
        self._lock = threading.Lock()

    def check_connection(self):
        return True

    def chain_id(self):
        return 31337

    def get_balance(self, address):
        return 10 ** 18

    def submit_call(self, method, args, to):
        gate = self.gates.get(method.signature)
        if gate is not None:
            gate.wait(5)
        with self._lock:
            self.calls.append((method.signature, tuple(args), to))
        result = self.call_results.get(method.signature, [])
        if isinstance(result, Exception):
            raise result
        return result

    def submit_transaction(self, method, args, to, value_wei=0):
        with self._lock:
            self.sent.append((method.signature, tuple(args), to, value_wei))
            return "0x%064x" % len(self.sent)

    def deploy(self, method, args, value_wei=0):
        with self._lock:
            self.sent.append((method.signature, tuple(args), None, value_wei))
            self.deployed.append(method.bytecode)
            return "0x%064x" % len(self.sent)

    def get_receipt(self, tx_hash):
        with self._lock:
            self.polls[tx_hash] += 1
            if self.receipt_errors:
                raise self.receipt_errors.pop(0)
            return self.receipts.get(tx_hash)

    def get_receipt_json(self, tx_hash):
        receipt = self.receipts.get(tx_hash)
        if receipt is None:
            raise ExecutionError(f"Receipt for {tx_hash} is not available yet", tx_hash=tx_hash)
        return {"transactionHash": tx_hash, "status": hex(receipt.status), "gasUsed": hex(receipt.gas_used)}

    def trace_transaction(self, tx_hash, config):
        self.traces.append(("tx", tx_hash, config.to_rpc()))
        return {"type": "CALL", "gas": "0x5208"}

    def trace_call(self, signature, args, to, config=None):
        self.traces.append(("call", signature, to, config.to_rpc() if config else None))
        return {"type": "STATICCALL"}


def mined(tx_hash, status=1, gas_used=21000, block_number=7, contract_address=None):
    return Receipt(tx_hash=tx_hash, status=status, gas_used=gas_used, block_number=block_number,
                   contract_address=contract_address)


def pump_until(session, predicate, timeout=5.0):
    """Pump the session until predicate() holds; False on timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        session.pump(timeout=0.05)
        if predicate():
            return True
    return predicate()
