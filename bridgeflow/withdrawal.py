"""L2 → L1 withdrawal coordination.

Two transactions, in order:
1. the child's own outbound transfer back to our L2 identity
   (``withdrawEth(recipient)`` or ``withdraw(recipient)``);
2. the bridge-level withdrawal, which emits the L2→L1 message.

Only the first withdrawal event of the confirmed receipt is reported (same
single-message-per-call assumption as deposit tracking). No wait for L1
finality happens here; claiming through the outbox after the dispute period
is a separate process.
"""
from __future__ import annotations

from typing import Optional

from bridgeflow.bridge import Bridge
from bridgeflow.errors import LedgerTransactionError, MalformedReceiptError, ProvisioningError, SubmissionError
from bridgeflow.ledger import Ledger
from bridgeflow.models import AssetKind, ChildHandle, WithdrawalIntent, WithdrawalReceipt


class WithdrawalCoordinator:
    def __init__(
        self,
        l2: Ledger,
        bridge: Bridge,
        *,
        l1_token: Optional[str] = None,
        child_contract: str = "ChildContract",
    ) -> None:
        self._l2 = l2
        self._bridge = bridge
        self._l1_token = l1_token
        self._child_contract = child_contract

    def withdraw(self, child: ChildHandle, intent: WithdrawalIntent) -> WithdrawalReceipt:
        if not child.funded:
            raise ProvisioningError(f"Child {child.identifier} at {child.address} is not funded yet")
        if intent.asset is AssetKind.FUNGIBLE and not self._l1_token:
            raise SubmissionError("Token withdrawal requires the L1 token address")

        recipient = self._l2.address
        print("[withdraw] Withdrawing...")
        try:
            if intent.asset is AssetKind.NATIVE:
                # withdrawEth is payable; the amount is attached and forwarded back with the balance.
                self._l2.transact(
                    child.address, self._child_contract, "withdrawEth", [recipient], value=intent.amount
                ).wait()
                pending = self._bridge.withdraw_eth(intent.amount)
            else:
                self._l2.transact(child.address, self._child_contract, "withdraw", [recipient]).wait()
                pending = self._bridge.withdraw_erc20(str(self._l1_token), intent.amount)
            receipt = pending.wait()
        except LedgerTransactionError as exc:
            raise SubmissionError(f"Withdrawal of {intent.amount} ({intent.asset.value}) failed: {exc}") from exc

        events = self._bridge.withdrawals_in_l2_transaction(receipt)
        if not events:
            raise MalformedReceiptError(f"No withdrawal event found in {receipt.tx_hash}")

        print(f"[withdraw] Withdrawal initiated! {receipt.tx_hash}")
        print(f"[withdraw] Withdrawal data: {events[0]}")
        print("[withdraw] To claim funds (after the dispute period), execute the message through the outbox")
        return WithdrawalReceipt(tx_hash=receipt.tx_hash, event=events[0], all_events=list(events))
