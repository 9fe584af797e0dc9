"""
JSON-RPC client for the card engine.

Thin wrapper around a single web3 HTTP provider. Every method is a blocking
call meant to run on a worker thread; failures are translated into the
evmcards exception hierarchy:

- transport problems (refused connection, timeout, HTTP errors) raise
  RPCConnectionError
- reverts and RPC error replies raise ExecutionError
- debug_trace* failures raise TraceUnavailableError
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from evmcards.abi.codec import decode_result, encode_call, encode_deploy
from evmcards.abi.methods import MethodRef
from evmcards.abi.values import Value
from evmcards.cards.card import Receipt
from evmcards.cards.tracers import TracerConfig, TracerKind
from evmcards.utils.exceptions import (
    ExecutionError,
    RPCConnectionError,
    TraceUnavailableError,
    format_exception_message,
)
from evmcards.utils.logging import get_logger

logger = get_logger("rpc")

_TRANSPORT_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.HTTPError,
    ConnectionError,
    TimeoutError,
)


def to_serializable(obj: Any) -> Any:
    """Convert web3 results (AttributeDict, HexBytes) into plain JSON data."""
    if isinstance(obj, HexBytes):
        hex_str = obj.hex()
        return hex_str if hex_str.startswith("0x") else "0x" + hex_str
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, Mapping):
        return {key: to_serializable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_serializable(item) for item in obj]
    return obj


def _normalize_hash(tx_hash: str) -> str:
    tx_hash = tx_hash.strip()
    return tx_hash if tx_hash.startswith("0x") else "0x" + tx_hash


def _quantity(value: Any) -> int:
    """JSON-RPC quantity (int or hex string) as an int; missing is 0."""
    if value is None:
        return 0
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


class RpcClient:
    """
    Blocking RPC operations against one EVM node.

    Safe to use from several threads at once: the only shared state is the
    web3 provider, and no method keeps per-call state on the instance.
    """

    def __init__(
        self,
        rpc_url: str = "http://localhost:8545",
        timeout: int = 30,
        private_key: Optional[str] = None,
        from_address: Optional[str] = None,
    ):
        self.rpc_url = rpc_url
        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self._account = self.w3.eth.account.from_key(private_key) if private_key else None
        if self._account is not None:
            self.sender: Optional[str] = self._account.address
        elif from_address:
            self.sender = Web3.to_checksum_address(from_address)
        else:
            self.sender = None

    def __repr__(self):
        return f"RpcClient({self.rpc_url!r}, sender={self.sender!r})"

    # ------------------------------------------------------------------
    # Error translation
    # ------------------------------------------------------------------

    def _transport_error(self, e: Exception) -> RPCConnectionError:
        return RPCConnectionError(
            f"Failed to reach {self.rpc_url}: {format_exception_message(e)}",
            rpc_url=self.rpc_url,
        )

    def _resolve_sender(self) -> str:
        if self.sender is None:
            accounts = self.w3.eth.accounts
            if not accounts:
                raise ExecutionError("No sender: configure a private key or an unlocked node account")
            self.sender = accounts[0]
        return self.sender

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def check_connection(self) -> bool:
        # A direct call is more reliable than is_connected()
        try:
            self.w3.eth.block_number
        except _TRANSPORT_ERRORS as e:
            logger.debug(f"Connection check failed: {e}")
            return False
        return True

    def chain_id(self) -> int:
        try:
            return self.w3.eth.chain_id
        except _TRANSPORT_ERRORS as e:
            raise self._transport_error(e)

    def get_balance(self, address: str) -> int:
        try:
            return self.w3.eth.get_balance(Web3.to_checksum_address(address))
        except _TRANSPORT_ERRORS as e:
            raise self._transport_error(e)

    # ------------------------------------------------------------------
    # Calls and transactions
    # ------------------------------------------------------------------

    def submit_call(self, method: MethodRef, args: Sequence[Value], to: str) -> List[Value]:
        """eth_call the method and decode its outputs."""
        call_obj: Dict[str, Any] = {
            "to": Web3.to_checksum_address(to),
            "data": encode_call(method.signature, method.input_types, args),
        }
        if self.sender:
            call_obj["from"] = self.sender
        try:
            raw = self.w3.eth.call(call_obj)
        except _TRANSPORT_ERRORS as e:
            raise self._transport_error(e)
        except ContractLogicError as e:
            raise ExecutionError(f"{method.signature} reverted: {format_exception_message(e)}")
        except (Web3Exception, ValueError) as e:
            raise ExecutionError(f"{method.signature} failed: {format_exception_message(e)}")
        try:
            return decode_result(method.output_types, bytes(raw))
        except Exception as e:
            raise ExecutionError(f"Could not decode result of {method.signature}: {e}")

    def submit_transaction(
        self,
        method: MethodRef,
        args: Sequence[Value],
        to: str,
        value_wei: int = 0,
    ) -> str:
        """
        Send a transaction and return its hash without waiting for a receipt.

        Signs locally when a private key is configured, otherwise relies on
        an unlocked account of the node.
        """
        tx: Dict[str, Any] = {
            "to": Web3.to_checksum_address(to),
            "data": encode_call(method.signature, method.input_types, args),
            "value": value_wei,
        }
        return self._send(tx, method.signature)

    def deploy(self, method: MethodRef, args: Sequence[Value], value_wei: int = 0) -> str:
        """
        Send a contract creation transaction for a constructor MethodRef.

        The created address arrives with the receipt (``contract_address``).
        """
        if not method.is_deploy:
            raise ExecutionError(f"{method.signature} carries no creation code")
        tx: Dict[str, Any] = {
            "data": encode_deploy(method.bytecode, method.input_types, args),
            "value": value_wei,
        }
        return self._send(tx, method.signature)

    def _send(self, tx: Dict[str, Any], what: str) -> str:
        try:
            tx["from"] = self._resolve_sender()
            if self._account is not None:
                tx["nonce"] = self.w3.eth.get_transaction_count(self._account.address, "pending")
                tx["chainId"] = self.w3.eth.chain_id
                tx["gas"] = self.w3.eth.estimate_gas(tx)
                tx["gasPrice"] = self.w3.eth.gas_price
                signed = self._account.sign_transaction(tx)
                tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = self.w3.eth.send_transaction(tx)
        except _TRANSPORT_ERRORS as e:
            raise self._transport_error(e)
        except ContractLogicError as e:
            raise ExecutionError(f"{what} would revert: {format_exception_message(e)}")
        except (Web3Exception, ValueError) as e:
            raise ExecutionError(f"{what} rejected: {format_exception_message(e)}")
        tx_hash = Web3.to_hex(tx_hash)
        logger.info(f"Submitted {what} as {tx_hash}")
        return tx_hash

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def _fetch_receipt(self, tx_hash: str):
        try:
            return self.w3.eth.get_transaction_receipt(_normalize_hash(tx_hash))
        except TransactionNotFound:
            return None
        except _TRANSPORT_ERRORS as e:
            raise self._transport_error(e)
        except (Web3Exception, ValueError) as e:
            raise ExecutionError(f"Receipt lookup failed: {format_exception_message(e)}", tx_hash=tx_hash)

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        """Receipt of a mined transaction, or None while it is still pending."""
        raw = self._fetch_receipt(tx_hash)
        # Some nodes answer null instead of an error
        if raw is None:
            return None
        plain = to_serializable(raw)
        status = plain.get("status")
        if status is None:
            # Pre-Byzantium receipts carry a state root instead of a status
            status = 1 if plain.get("root") else 0
        return Receipt(
            tx_hash=_normalize_hash(tx_hash),
            status=_quantity(status),
            gas_used=_quantity(plain.get("gasUsed")),
            block_number=_quantity(plain.get("blockNumber")),
            logs=tuple(plain.get("logs") or ()),
            contract_address=plain.get("contractAddress"),
            raw=plain,
        )

    def get_receipt_json(self, tx_hash: str) -> Dict[str, Any]:
        raw = self._fetch_receipt(tx_hash)
        if raw is None:
            raise ExecutionError(f"Receipt not available yet for {tx_hash}", tx_hash=tx_hash)
        return to_serializable(raw)

    # ------------------------------------------------------------------
    # Debug tracing
    # ------------------------------------------------------------------

    def _trace(self, rpc_method: str, params: list, target: str) -> Dict[str, Any]:
        try:
            result = self.w3.manager.request_blocking(rpc_method, params)
        except _TRANSPORT_ERRORS as e:
            raise self._transport_error(e)
        except (Web3Exception, ValueError) as e:
            raise TraceUnavailableError(target, format_exception_message(e))
        return to_serializable(result)

    def trace_transaction(self, tx_hash: str, config: TracerConfig) -> Dict[str, Any]:
        """Replay a mined transaction with the given tracer."""
        tx_hash = _normalize_hash(tx_hash)
        logger.debug(f"debug_traceTransaction {tx_hash} with {config.kind.tracer_name}")
        return self._trace("debug_traceTransaction", [tx_hash, config.to_rpc()], tx_hash)

    def trace_call(
        self,
        signature: str,
        args: Sequence[Value],
        to: str,
        config: Optional[TracerConfig] = None,
    ) -> Dict[str, Any]:
        """Re-execute a call with debug_traceCall (call tracer defaults)."""
        config = config or TracerConfig.defaults(TracerKind.CALL)
        call_obj: Dict[str, Any] = {
            "to": Web3.to_checksum_address(to),
            "data": encode_call(signature, [a.type for a in args], args),
        }
        if self.sender:
            call_obj["from"] = self.sender
        logger.debug(f"debug_traceCall {signature} on {to} with {config.kind.tracer_name}")
        return self._trace("debug_traceCall", [call_obj, "latest", config.to_rpc()], signature)
