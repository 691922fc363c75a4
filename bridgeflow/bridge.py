"""Bridge collaborator interface and L2 hash derivation.

The bridge is treated as an authoritative black box: fee computation, message
passing and the outbox are its business. The flow only needs the surface in
``Bridge`` below.

The derivation helpers implement the classic Arbitrum rules for computing the
hash of an L2 transaction from the inbox sequence number *before* that
transaction exists:

- request id  = keccak(pad32(l2_chain_id) || pad32(seq | 1 << 255))
- native deposits execute directly as the request id itself
- retryable redemption = keccak(pad32(request_id) || pad32(0))
- auto-redeem record   = keccak(pad32(request_id) || pad32(1))
"""
from __future__ import annotations

from typing import List, Protocol

from web3 import Web3

from bridgeflow.models import PendingTransaction, TxReceipt, WithdrawalEvent

_SEQ_NUM_FLIP = 1 << 255


def _pad32(value: int) -> bytes:
    return int(value).to_bytes(32, "big")


def bit_flip_seq_num(seq_num: int) -> int:
    """Set the top bit of the sequence number (distinguishes L1-originated ids)."""

    return int(seq_num) | _SEQ_NUM_FLIP


def calculate_request_id(seq_num: int, l2_chain_id: int) -> str:
    """Hash of the L2 transaction a deposit of ``seq_num`` creates directly."""

    digest = Web3.keccak(_pad32(l2_chain_id) + _pad32(bit_flip_seq_num(seq_num)))
    return Web3.to_hex(digest)


def _derive_from_request_id(request_id: str, index: int) -> str:
    rid = Web3.to_bytes(hexstr=request_id).rjust(32, b"\x00")
    return Web3.to_hex(Web3.keccak(rid + _pad32(index)))


def calculate_retryable_redeem_hash(seq_num: int, l2_chain_id: int) -> str:
    """Hash of the L2 transaction that redeems the retryable ticket."""

    return _derive_from_request_id(calculate_request_id(seq_num, l2_chain_id), 0)


def calculate_auto_redeem_hash(seq_num: int, l2_chain_id: int) -> str:
    """Hash of the record that the automatic redemption happened."""

    return _derive_from_request_id(calculate_request_id(seq_num, l2_chain_id), 1)


class Bridge(Protocol):
    """Surface of the external bridge library consumed by the flow.

    Write methods return ``PendingTransaction`` handles on the ledger they act
    on (L1 for approvals/deposits, L2 for withdrawals).
    """

    def l2_token_address(self, l1_token: str) -> str:
        """Deterministic L2 counterpart of an L1 token."""

    def approve_token(self, l1_token: str, amount: int) -> PendingTransaction:
        """Authorize the bridge's token gateway to pull ``amount`` on L1."""

    def deposit_eth(self, amount: int) -> PendingTransaction:
        """Value-bearing native deposit to L2."""

    def deposit(self, l1_token: str, amount: int) -> PendingTransaction:
        """Token deposit to L2 (fees computed and attached by the bridge)."""

    def inbox_sequence_numbers(self, receipt: TxReceipt) -> List[int]:
        """Ordered inbox sequence numbers emitted by an L1 transaction."""

    def l2_transaction_hash(self, seq_num: int) -> str:
        """Derived hash for a native deposit's L2 transaction."""

    def l2_retryable_hash(self, seq_num: int) -> str:
        """Derived hash for a token deposit's retryable redemption."""

    def withdraw_eth(self, amount: int) -> PendingTransaction:
        """Initiate a native withdrawal from L2."""

    def withdraw_erc20(self, l1_token: str, amount: int) -> PendingTransaction:
        """Initiate a token withdrawal from L2."""

    def withdrawals_in_l2_transaction(self, receipt: TxReceipt) -> List[WithdrawalEvent]:
        """Withdrawal events emitted by an L2 transaction, in log order."""
