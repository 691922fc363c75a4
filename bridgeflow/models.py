"""Value types shared by the flow components.

The types are small dataclasses so they are easy to log (see
``bridgeflow.run_log.json_friendly``) and to construct in tests. Amounts are
always integers in the asset's smallest unit (wei for the native coin, raw
token units for fungible tokens).
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

if TYPE_CHECKING:  # pragma: no cover
    from bridgeflow.ledger import Ledger

ZERO_ADDRESS = "0x" + "00" * 20


class AssetKind(str, Enum):
    """What is being moved across the bridge."""

    NATIVE = "native"
    FUNGIBLE = "fungible"


class MessageStatus(str, Enum):
    PENDING = "PENDING"
    INCLUDED = "INCLUDED"
    TIMED_OUT = "TIMED_OUT"


# -------------
# Ledger-level
# -------------


@dataclass(frozen=True)
class TxReceipt:
    """Ledger-neutral view of a mined transaction.

    ``logs`` keeps the adapter's raw log entries; ``raw`` keeps the adapter's
    full receipt object so bridge adapters can decode events from it.
    """

    tx_hash: str
    status: int
    block_number: Optional[int] = None
    contract_address: Optional[str] = None
    logs: Tuple[Any, ...] = ()
    raw: Any = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class PendingTransaction:
    """A submitted, not yet confirmed transaction."""

    tx_hash: str
    ledger: "Ledger"

    def wait(self) -> TxReceipt:
        """Block until the transaction is mined; raise on revert or timeout."""

        return self.ledger.wait_for_receipt(self.tx_hash)


# -------------
# Resources
# -------------


@dataclass(frozen=True)
class UseExisting:
    """Bind to an already deployed resource."""

    name: str
    address: str


@dataclass(frozen=True)
class DeployNew:
    """Deploy a fresh instance of ``name`` with constructor ``args``."""

    name: str
    args: Tuple[Any, ...] = ()


ResourceSpec = Union[UseExisting, DeployNew]


def resource_spec(name: str, override: Optional[str], args: Tuple[Any, ...] = ()) -> ResourceSpec:
    """Build the tagged spec from an optional override address."""

    if override:
        return UseExisting(name=name, address=override)
    return DeployNew(name=name, args=tuple(args))


@dataclass(frozen=True)
class ResolvedResource:
    name: str
    address: str
    newly_deployed: bool


# -------------
# Deposit / tracking
# -------------


@dataclass(frozen=True)
class DepositIntent:
    """Request to move ``amount`` of an asset from L1 to L2.

    ``token`` is the L1 token address and must be set for FUNGIBLE deposits.
    """

    asset: AssetKind
    amount: int
    source: str
    token: Optional[str] = None

    def __post_init__(self) -> None:
        if int(self.amount) <= 0:
            raise ValueError(f"Deposit amount must be positive, got {self.amount!r}")
        if self.asset is AssetKind.FUNGIBLE and not self.token:
            raise ValueError("Fungible deposit requires a resolved token address")


@dataclass(frozen=True)
class DepositReceipt:
    tx_hash: str
    sequence_numbers: Tuple[int, ...]
    receipt: Optional[TxReceipt] = None


@dataclass(frozen=True)
class CrossLayerMessage:
    """A single L1→L2 message and the L2 transaction it will produce.

    Status transitions are one-way: PENDING → INCLUDED or PENDING → TIMED_OUT.
    """

    sequence_number: int
    l2_tx_hash: str
    status: MessageStatus = MessageStatus.PENDING
    l2_receipt: Optional[TxReceipt] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not MessageStatus.PENDING

    def transition(self, status: MessageStatus, *, l2_receipt: Optional[TxReceipt] = None) -> "CrossLayerMessage":
        if self.is_terminal:
            raise ValueError(f"Message {self.sequence_number} already {self.status.value}; cannot move to {status.value}")
        if status is MessageStatus.PENDING:
            raise ValueError("Cannot transition back to PENDING")
        return replace(self, status=status, l2_receipt=l2_receipt)


# -------------
# Child / withdrawal
# -------------


@dataclass(frozen=True)
class ChildHandle:
    identifier: int
    address: str
    funded: bool = False


@dataclass(frozen=True)
class WithdrawalIntent:
    asset: AssetKind
    amount: int
    source: str

    def __post_init__(self) -> None:
        if int(self.amount) <= 0:
            raise ValueError(f"Withdrawal amount must be positive, got {self.amount!r}")


@dataclass(frozen=True)
class WithdrawalEvent:
    """Decoded payload of an L2→L1 withdrawal event.

    ``token`` is None for native withdrawals. ``raw`` keeps the full decoded
    argument mapping from the adapter.
    """

    caller: str
    destination: str
    amount: int
    token: Optional[str] = None
    unique_id: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WithdrawalReceipt:
    tx_hash: str
    event: WithdrawalEvent
    all_events: List[WithdrawalEvent] = field(default_factory=list)
