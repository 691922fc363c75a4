"""Tracking of L1 → L2 messages until their L2 transaction is included.

Flow for one deposit:
1. Take the first inbox sequence number from the deposit receipt. A single
   L1 transaction could in principle trigger several messages; the deposit
   calls used here only ever trigger one, so index 0 is used and the rest are
   ignored (single-message-per-call assumption).
2. Derive the L2 transaction hash from the sequence number *before* the L2
   transaction exists: native deposits execute directly under the request id,
   token deposits go through the retryable redemption, so the two derivations
   differ and are not interchangeable.
3. Poll the L2 ledger under a ``PollTimer`` until the transaction is found or
   the bound (10 minutes by default) elapses. Expiry raises
   ``MessageTimeoutError`` carrying the TIMED_OUT message.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from bridgeflow.bridge import Bridge
from bridgeflow.errors import LedgerTransactionError, MalformedReceiptError, MessageTimeoutError
from bridgeflow.ledger import Ledger
from bridgeflow.models import AssetKind, CrossLayerMessage, DepositReceipt, MessageStatus
from bridgeflow.polling import PollTimer


def derive_l2_tx_hash(bridge: Bridge, seq_num: int, asset: AssetKind) -> str:
    if asset is AssetKind.NATIVE:
        return bridge.l2_transaction_hash(seq_num)
    return bridge.l2_retryable_hash(seq_num)


class MessageTracker:
    def __init__(
        self,
        l1: Ledger,
        l2: Ledger,
        bridge: Bridge,
        *,
        poll_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._l1 = l1
        self._l2 = l2
        self._bridge = bridge
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._timer: Optional[PollTimer] = None

    def cancel(self) -> None:
        """Abort the wait in progress (if any); it ends as TIMED_OUT."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()

    def message_for(self, receipt: DepositReceipt, asset: AssetKind) -> CrossLayerMessage:
        """Build the PENDING message (first sequence number, derived hash)."""

        if not receipt.sequence_numbers:
            raise MalformedReceiptError(f"No inbox sequence number found in deposit {receipt.tx_hash}")
        seq_num = int(receipt.sequence_numbers[0])
        return CrossLayerMessage(sequence_number=seq_num, l2_tx_hash=derive_l2_tx_hash(self._bridge, seq_num, asset))

    def track(self, receipt: DepositReceipt, asset: AssetKind, timeout: float) -> CrossLayerMessage:
        message = self.message_for(receipt, asset)
        print(f"[track] Sequence number for your transaction found: {message.sequence_number}")
        print(f"[track] l2TxHash is: {message.l2_tx_hash}")
        print("[track] waiting for L2 transaction:")

        timer = PollTimer(timeout, interval=self._poll_interval, clock=self._clock, sleep=self._sleep)
        with self._lock:
            self._timer = timer
        try:
            while True:
                found = self._l2.get_receipt(message.l2_tx_hash)
                if found is not None:
                    print(f"[track] L2 transaction found! {found.tx_hash} ({timer.elapsed:.1f}s)")
                    return message.transition(MessageStatus.INCLUDED, l2_receipt=found)
                if not timer.wait_next():
                    break
        finally:
            with self._lock:
                self._timer = None

        timed_out = message.transition(MessageStatus.TIMED_OUT)
        reason = "cancelled" if timer.cancelled else f"not included within {timer.timeout:.0f}s"
        raise MessageTimeoutError(
            f"L2 transaction {timed_out.l2_tx_hash} for sequence number {timed_out.sequence_number} {reason}; "
            "funds may be in flight, resume tracking instead of re-submitting",
            cross_layer_message=timed_out,
            elapsed=timer.elapsed,
        )

    def track_hash(self, l1_tx_hash: str, asset: AssetKind, timeout: float) -> CrossLayerMessage:
        """Resume tracking from a confirmed L1 deposit transaction hash."""

        try:
            l1_receipt = self._l1.wait_for_receipt(l1_tx_hash)
        except LedgerTransactionError as exc:
            raise MalformedReceiptError(f"Deposit {l1_tx_hash} has no successful L1 receipt: {exc}") from exc
        seq_nums = tuple(int(s) for s in self._bridge.inbox_sequence_numbers(l1_receipt))
        return self.track(DepositReceipt(tx_hash=l1_tx_hash, sequence_numbers=seq_nums, receipt=l1_receipt), asset, timeout)
