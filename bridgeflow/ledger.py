"""Ledger abstractions for the two sides of the bridge.

This module introduces a minimal, repo-specific ledger interface that is used
by every flow component:
- In-memory simulation (``bridgeflow.simulated.SimulatedLedger``).
- JSON-RPC chains via web3.py (``bridgeflow.web3_ledger.Web3Ledger``).

The interface is intentionally small and explicit so that coordinators can
depend on it without pulling in any web3-specific details, and so that unit
tests can mock it easily.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from bridgeflow.models import PendingTransaction, TxReceipt


class Ledger(Protocol):
    """A signing identity bound to one ledger endpoint.

    Write methods return a ``PendingTransaction``; callers decide when to wait
    on it. ``wait_for_receipt`` is "confirm or fail": it raises
    ``LedgerTransactionError`` on revert or when the confirmation wait
    expires. ``get_receipt`` never blocks and returns None while the
    transaction is unknown or unmined.
    """

    name: str

    @property
    def address(self) -> str:
        """Address of the signing identity on this ledger."""

    @property
    def chain_id(self) -> int:
        """Chain id of the bound endpoint."""

    def native_balance(self, address: str) -> int:
        """Native-coin balance of ``address`` in wei."""

    def deploy(self, contract_name: str, args: Sequence[Any] = ()) -> PendingTransaction:
        """Submit a deployment of the named contract artifact."""

    def transact(
        self,
        address: str,
        contract_name: str,
        function: str,
        args: Sequence[Any] = (),
        *,
        value: int = 0,
    ) -> PendingTransaction:
        """Submit a state-changing call to ``function`` on the contract at ``address``."""

    def call(self, address: str, contract_name: str, function: str, args: Sequence[Any] = ()) -> Any:
        """Run a read-only call and return its decoded result."""

    def send_value(self, to: str, amount: int) -> PendingTransaction:
        """Submit a plain native-coin transfer."""

    def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Block until ``tx_hash`` is mined and succeeded."""

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        """Return the receipt if ``tx_hash`` is included, else None."""


@dataclass(frozen=True)
class LedgerIdentity:
    """One signing identity on one ledger.

    ``endpoint`` is a human-readable reference (RPC URL or simulator name)
    used only for reporting.
    """

    ledger: Ledger
    endpoint: str

    @property
    def address(self) -> str:
        return self.ledger.address


@dataclass(frozen=True)
class LedgerContext:
    """Both identities, constructed once and passed into every component."""

    l1: LedgerIdentity
    l2: LedgerIdentity

    @classmethod
    def from_ledgers(cls, l1: Ledger, l2: Ledger, *, l1_endpoint: str = "l1", l2_endpoint: str = "l2") -> "LedgerContext":
        return cls(l1=LedgerIdentity(ledger=l1, endpoint=l1_endpoint), l2=LedgerIdentity(ledger=l2, endpoint=l2_endpoint))

    @property
    def l1_ledger(self) -> Ledger:
        return self.l1.ledger

    @property
    def l2_ledger(self) -> Ledger:
        return self.l2.ledger
