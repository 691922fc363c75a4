"""JSON-RPC ledger implementation using web3.py.

This module provides a ``Web3Ledger`` class that implements the generic
``Ledger`` interface defined in ``bridgeflow.ledger`` on top of ``web3.py``
and ``eth-account``.

Design goals:
- Keep the interface small and aligned with ``Ledger``.
- Sign locally with ``eth_account`` (the node never sees the key).
- Allow injecting a pre-configured ``Web3`` instance for tests.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound, Web3Exception

from bridgeflow.artifacts import ArtifactStore
from bridgeflow.errors import ConfigurationError, LedgerTransactionError
from bridgeflow.models import PendingTransaction, TxReceipt


@dataclass
class Web3LedgerConfig:
    """Configuration for ``Web3Ledger``."""

    rpc_url: str
    private_key: str
    receipt_timeout_seconds: float = 300.0
    poll_latency_seconds: float = 0.5


def receipt_from_web3(raw: Any) -> TxReceipt:
    """Map a web3 receipt (AttributeDict or plain dict) onto ``TxReceipt``."""

    tx_hash = raw["transactionHash"]
    contract_address = raw.get("contractAddress")
    return TxReceipt(
        tx_hash=tx_hash if isinstance(tx_hash, str) else Web3.to_hex(tx_hash),
        status=int(raw.get("status", 0)),
        block_number=raw.get("blockNumber"),
        contract_address=str(contract_address) if contract_address else None,
        logs=tuple(raw.get("logs") or ()),
        raw=raw,
    )


class Web3Ledger:
    """One signing identity on one JSON-RPC endpoint.

    The class can either create its own ``Web3`` HTTP connection or reuse an
    injected instance (useful for tests).
    """

    def __init__(
        self,
        name: str,
        config: Web3LedgerConfig,
        artifacts: ArtifactStore,
        w3: Optional[Web3] = None,
    ) -> None:
        self.name = name
        self._config = config
        self._artifacts = artifacts
        self._w3: Web3 = w3 if w3 is not None else Web3(Web3.HTTPProvider(config.rpc_url))
        self._account = Account.from_key(config.private_key)
        self._chain_id: Optional[int] = None

    # -------------
    # Identity
    # -------------

    @property
    def w3(self) -> Web3:
        return self._w3

    @property
    def artifacts(self) -> ArtifactStore:
        return self._artifacts

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(self._w3.eth.chain_id)
        return self._chain_id

    # -------------
    # Helpers
    # -------------

    def contract(self, contract_name: str, address: Optional[str] = None):
        art = self._artifacts.get(contract_name)
        if address is None:
            return self._w3.eth.contract(abi=art.abi, bytecode=art.bytecode)
        return self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=art.abi)

    def _tx_params(self, value: int = 0) -> Dict[str, Any]:
        return {
            "from": self.address,
            "nonce": self._w3.eth.get_transaction_count(self.address, "pending"),
            "chainId": self.chain_id,
            "value": int(value),
        }

    def _sign_and_send(self, tx: Dict[str, Any], *, what: str) -> PendingTransaction:
        try:
            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, ValueError) as exc:
            raise LedgerTransactionError(f"[{self.name}] {what} rejected: {exc}") from exc
        return PendingTransaction(tx_hash=Web3.to_hex(tx_hash), ledger=self)

    # -------------
    # Ledger interface
    # -------------

    def native_balance(self, address: str) -> int:
        return int(self._w3.eth.get_balance(Web3.to_checksum_address(address)))

    def deploy(self, contract_name: str, args: Sequence[Any] = ()) -> PendingTransaction:
        art = self._artifacts.get(contract_name)
        if not art.deployable:
            raise ConfigurationError(f"Artifact {contract_name!r} has no bytecode; cannot deploy")

        factory = self.contract(contract_name)
        try:
            tx = factory.constructor(*args).build_transaction(self._tx_params())
        except (Web3Exception, ValueError) as exc:
            raise LedgerTransactionError(f"[{self.name}] deploy {contract_name} would fail: {exc}") from exc
        return self._sign_and_send(tx, what=f"deploy {contract_name}")

    def transact(
        self,
        address: str,
        contract_name: str,
        function: str,
        args: Sequence[Any] = (),
        *,
        value: int = 0,
    ) -> PendingTransaction:
        fn = getattr(self.contract(contract_name, address).functions, function)
        try:
            tx = fn(*args).build_transaction(self._tx_params(value))
        except (Web3Exception, ValueError) as exc:
            raise LedgerTransactionError(f"[{self.name}] {contract_name}.{function} would fail: {exc}") from exc
        return self._sign_and_send(tx, what=f"{contract_name}.{function}")

    def call(self, address: str, contract_name: str, function: str, args: Sequence[Any] = ()) -> Any:
        fn = getattr(self.contract(contract_name, address).functions, function)
        try:
            return fn(*args).call({"from": self.address})
        except (Web3Exception, ValueError) as exc:
            raise LedgerTransactionError(f"[{self.name}] call {contract_name}.{function} failed: {exc}") from exc

    def send_value(self, to: str, amount: int) -> PendingTransaction:
        tx = self._tx_params(amount)
        tx["to"] = Web3.to_checksum_address(to)
        tx["gasPrice"] = self._w3.eth.gas_price
        try:
            tx["gas"] = self._w3.eth.estimate_gas(tx)
        except (Web3Exception, ValueError) as exc:
            raise LedgerTransactionError(f"[{self.name}] value transfer to {to} would fail: {exc}") from exc
        return self._sign_and_send(tx, what=f"value transfer to {to}")

    def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        try:
            raw = self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._config.receipt_timeout_seconds,
                poll_latency=self._config.poll_latency_seconds,
            )
        except TimeExhausted as exc:
            raise LedgerTransactionError(
                f"[{self.name}] {tx_hash} not confirmed within {self._config.receipt_timeout_seconds:.0f}s",
                tx_hash=tx_hash,
            ) from exc

        receipt = receipt_from_web3(raw)
        if not receipt.succeeded:
            raise LedgerTransactionError(f"[{self.name}] transaction {tx_hash} reverted", tx_hash=tx_hash)
        return receipt

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        try:
            raw = self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        if raw is None:
            return None
        return receipt_from_web3(raw)
