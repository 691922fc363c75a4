"""L1 → L2 deposit coordination.

For fungible tokens the bridge's token gateway is the contract that ends up
pulling the funds, so it must be approved (and the approval confirmed) before
the deposit is submitted; the deposit would otherwise revert on insufficient
allowance. Native deposits are a single value-bearing call. Fee computation
is left entirely to the bridge.
"""
from __future__ import annotations

from bridgeflow.bridge import Bridge
from bridgeflow.errors import ApprovalError, LedgerTransactionError, SubmissionError
from bridgeflow.models import AssetKind, DepositIntent, DepositReceipt


class DepositCoordinator:
    def __init__(self, bridge: Bridge) -> None:
        self._bridge = bridge

    def approve(self, intent: DepositIntent) -> str:
        """Approve the gateway for ``intent.amount`` and wait; return the tx hash."""

        if not intent.token:
            raise ApprovalError("No token address to approve; native deposits need no approval")
        try:
            receipt = self._bridge.approve_token(intent.token, intent.amount).wait()
        except LedgerTransactionError as exc:
            raise ApprovalError(f"Approval of {intent.amount} for {intent.token} failed: {exc}") from exc
        print(f"[deposit] You successfully allowed the bridge to spend the token {receipt.tx_hash}")
        return receipt.tx_hash

    def deposit(self, intent: DepositIntent) -> DepositReceipt:
        if intent.asset is AssetKind.FUNGIBLE:
            self.approve(intent)
            print(f"[deposit] Depositing {intent.amount} of {intent.token}...")
        else:
            print(f"[deposit] Depositing {intent.amount} wei of the native coin...")

        try:
            if intent.asset is AssetKind.FUNGIBLE:
                pending = self._bridge.deposit(str(intent.token), intent.amount)
            else:
                pending = self._bridge.deposit_eth(intent.amount)
            receipt = pending.wait()
        except LedgerTransactionError as exc:
            raise SubmissionError(f"Deposit of {intent.amount} ({intent.asset.value}) failed: {exc}") from exc

        seq_nums = tuple(int(s) for s in self._bridge.inbox_sequence_numbers(receipt))
        print(f"[deposit] Deposited {receipt.tx_hash} (sequence numbers: {list(seq_nums)})")
        return DepositReceipt(tx_hash=receipt.tx_hash, sequence_numbers=seq_nums, receipt=receipt)
