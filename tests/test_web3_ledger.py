"""Tests for bridgeflow.web3_ledger.Web3Ledger.

These tests focus on the mapping between web3.py results/exceptions and our
ledger-neutral types. They do not attempt live connectivity: a minimal
duck-typed stand-in replaces ``Web3.eth``.
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound

from bridgeflow.artifacts import ArtifactStore
from bridgeflow.errors import ConfigurationError, LedgerTransactionError
from bridgeflow.web3_ledger import Web3Ledger, Web3LedgerConfig, receipt_from_web3

PRIVATE_KEY = "0x" + "11" * 32
TX_HASH = b"\x12" * 32


class _FakeEth:
    """Minimal stand-in for ``Web3.eth``; records raw transactions."""

    chain_id = 412346
    gas_price = 10**9

    def __init__(self) -> None:
        self.sent = []
        self.receipts = {}

    def get_transaction_count(self, address, block_identifier):
        return 3

    def get_balance(self, address):
        return 5 * 10**18

    def estimate_gas(self, tx):
        return 21000

    def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return TX_HASH

    def get_transaction_receipt(self, tx_hash):
        if tx_hash not in self.receipts:
            raise TransactionNotFound(f"Transaction with hash: {tx_hash!r} not found.")
        return self.receipts[tx_hash]

    def wait_for_transaction_receipt(self, tx_hash, timeout=120, poll_latency=0.1):
        if tx_hash not in self.receipts:
            raise TimeExhausted(f"Transaction {tx_hash!r} is not in the chain after {timeout} seconds")
        return self.receipts[tx_hash]


class _FakeWeb3:
    def __init__(self) -> None:
        self.eth = _FakeEth()


def _ledger(store: ArtifactStore | None = None) -> tuple[Web3Ledger, _FakeEth]:
    w3 = _FakeWeb3()
    ledger = Web3Ledger(
        "l2",
        Web3LedgerConfig(rpc_url="http://localhost:8547", private_key=PRIVATE_KEY, receipt_timeout_seconds=1),
        store or ArtifactStore(),
        w3=w3,  # type: ignore[arg-type]
    )
    return ledger, w3.eth


def _raw_receipt(status: int, **extra):
    raw = {"transactionHash": TX_HASH, "status": status, "blockNumber": 7, "contractAddress": None, "logs": []}
    raw.update(extra)
    return raw


def test_identity_and_chain_id() -> None:
    ledger, _ = _ledger()
    assert ledger.address == Account.from_key(PRIVATE_KEY).address
    assert ledger.chain_id == 412346
    assert ledger.native_balance(ledger.address) == 5 * 10**18


def test_receipt_mapping_hexes_hash_and_keeps_address() -> None:
    contract = "0x" + "ab" * 20
    receipt = receipt_from_web3(_raw_receipt(1, contractAddress=contract))

    assert receipt.tx_hash == Web3.to_hex(TX_HASH)
    assert receipt.succeeded
    assert receipt.block_number == 7
    assert receipt.contract_address == contract


def test_send_value_signs_locally_and_returns_pending() -> None:
    ledger, eth = _ledger()

    pending = ledger.send_value("0x" + "ab" * 20, 10**16)

    assert pending.tx_hash == Web3.to_hex(TX_HASH)
    assert pending.ledger is ledger
    assert len(eth.sent) == 1 and isinstance(eth.sent[0], (bytes, bytearray))


def test_get_receipt_is_none_until_mined() -> None:
    ledger, eth = _ledger()
    h = Web3.to_hex(TX_HASH)
    assert ledger.get_receipt(h) is None

    eth.receipts[h] = _raw_receipt(1)
    receipt = ledger.get_receipt(h)
    assert receipt is not None and receipt.tx_hash == h


def test_wait_for_receipt_raises_on_revert() -> None:
    ledger, eth = _ledger()
    h = Web3.to_hex(TX_HASH)
    eth.receipts[h] = _raw_receipt(0)

    with pytest.raises(LedgerTransactionError) as excinfo:
        ledger.wait_for_receipt(h)
    assert excinfo.value.tx_hash == h


def test_wait_for_receipt_raises_on_timeout() -> None:
    ledger, _ = _ledger()

    with pytest.raises(LedgerTransactionError) as excinfo:
        ledger.wait_for_receipt(Web3.to_hex(TX_HASH))
    assert "not confirmed" in str(excinfo.value)


def test_deploy_requires_bytecode() -> None:
    store = ArtifactStore()
    store.register("ArbSys", [])
    ledger, _ = _ledger(store)

    with pytest.raises(ConfigurationError):
        ledger.deploy("ArbSys")


def test_artifact_store_reads_hardhat_layout(tmp_path: Path) -> None:
    art_dir = tmp_path / "contracts" / "DappToken3.sol"
    art_dir.mkdir(parents=True)
    (art_dir / "DappToken3.json").write_text(
        json.dumps({"contractName": "DappToken3", "abi": [], "bytecode": "0x6080"}), encoding="utf-8"
    )
    (art_dir / "DappToken3.dbg.json").write_text(json.dumps({"buildInfo": "x"}), encoding="utf-8")

    store = ArtifactStore(tmp_path)
    artifact = store.get("DappToken3")

    assert artifact.name == "DappToken3"
    assert artifact.deployable
    with pytest.raises(ConfigurationError):
        store.get("ContractFactory")
