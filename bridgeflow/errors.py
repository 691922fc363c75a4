"""Error taxonomy for the deposit/withdrawal flow.

Every failure the flow can surface to an operator is one of the classes below.
Ledger adapters raise ``LedgerTransactionError`` for a reverted or
never-confirmed transaction; the coordinators translate that into the
step-specific kind (``ApprovalError``, ``SubmissionError``, ...) so the
top-level runner can tell *where* the flow stopped.

``MessageTimeoutError`` is separate from the revert-style
errors: when it is raised, funds may already have left L1 and are still in
flight, so the operator should resume tracking rather than re-submit.
"""
from __future__ import annotations

from typing import Any, Optional


class BridgeFlowError(Exception):
    """Base class for all flow errors.

    ``step`` is filled in by the pipeline with the name of the step that
    failed (e.g. ``"deposit"``); components may leave it as ``None``.
    """

    def __init__(self, message: str, *, step: Optional[str] = None) -> None:
        super().__init__(message)
        self.step = step


class ConfigurationError(BridgeFlowError):
    """A required input is missing or malformed; no flow is attempted."""


class ProvisioningError(BridgeFlowError):
    """Deployment or resolution of an on-chain resource failed."""


class ApprovalError(BridgeFlowError):
    """A spending-approval transaction reverted or never confirmed."""


class SubmissionError(BridgeFlowError):
    """A deposit or withdrawal transaction reverted or never confirmed."""


class MalformedReceiptError(BridgeFlowError):
    """A confirmed receipt lacks the event data the flow relies on."""


class MessageTimeoutError(BridgeFlowError, TimeoutError):
    """The L2 transaction for a cross-layer message was not observed in time.

    Carries the (TIMED_OUT) message so the operator can resume tracking the
    derived L2 hash out-of-band.
    """

    def __init__(self, message: str, *, cross_layer_message: Any, elapsed: float, step: Optional[str] = None) -> None:
        super().__init__(message, step=step)
        self.cross_layer_message = cross_layer_message
        self.elapsed = elapsed


class LedgerTransactionError(BridgeFlowError):
    """Raised by ledger adapters when a transaction reverts or times out."""

    def __init__(self, message: str, *, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class StepOrderError(BridgeFlowError):
    """A step ran before an earlier step produced the state it needs."""
