"""The deposit → track → child → withdrawal pipeline.

``BridgeFlow`` runs an explicit, ordered list of steps. Each step takes the
current ``FlowState`` and returns an updated copy; nothing is kept in module
globals. The first ``BridgeFlowError`` stops the run: the error is tagged with
the failing step name and returned in ``FlowOutcome`` (other exceptions are
bugs and propagate).

Balances are sampled at phase boundaries (``start``, ``after_deposit``,
``after_child``, ``end``) and every step is appended to the JSONL run log.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd

from bridgeflow.audit import BalanceAuditor
from bridgeflow.bridge import Bridge
from bridgeflow.children import ChildProvisioner
from bridgeflow.config import FlowConfig
from bridgeflow.deposit import DepositCoordinator
from bridgeflow.errors import BridgeFlowError, ConfigurationError, StepOrderError
from bridgeflow.ledger import LedgerContext
from bridgeflow.models import (
    ChildHandle,
    CrossLayerMessage,
    DepositIntent,
    DepositReceipt,
    ResolvedResource,
    WithdrawalIntent,
    WithdrawalReceipt,
    resource_spec,
)
from bridgeflow.resources import ResourceResolver
from bridgeflow.run_log import RunLog
from bridgeflow.tracking import MessageTracker
from bridgeflow.withdrawal import WithdrawalCoordinator

STEPS: Tuple[str, ...] = (
    "resolve_token",
    "deposit",
    "track",
    "resolve_master",
    "resolve_factory",
    "provision_child",
    "withdraw",
)

# Balance sample taken once the named step has completed.
PHASE_AFTER_STEP: Dict[str, str] = {
    "resolve_token": "start",
    "track": "after_deposit",
    "provision_child": "after_child",
    "withdraw": "end",
}


@dataclass(frozen=True)
class FlowState:
    l1_token: Optional[ResolvedResource] = None
    l2_token: Optional[str] = None
    deposit: Optional[DepositReceipt] = None
    message: Optional[CrossLayerMessage] = None
    master: Optional[ResolvedResource] = None
    factory: Optional[ResolvedResource] = None
    child: Optional[ChildHandle] = None
    withdrawal: Optional[WithdrawalReceipt] = None
    completed: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()


@dataclass
class FlowOutcome:
    run_id: str
    state: FlowState
    error: Optional[BridgeFlowError] = None
    failed_step: Optional[str] = None
    log_path: Optional[Path] = None
    balances: pd.DataFrame = field(default_factory=pd.DataFrame, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None


class BridgeFlow:
    """Wire the flow components for one configuration and run them in order."""

    def __init__(
        self,
        ctx: LedgerContext,
        bridge: Bridge,
        cfg: FlowConfig,
        *,
        run_log: Optional[RunLog] = None,
        tracker: Optional[MessageTracker] = None,
        auditor: Optional[BalanceAuditor] = None,
    ) -> None:
        self.ctx = ctx
        self.bridge = bridge
        self.cfg = cfg
        self.run_log = run_log or RunLog(None, "unlogged")
        self.tracker = tracker or MessageTracker(
            ctx.l1_ledger, ctx.l2_ledger, bridge, poll_interval=cfg.timing.poll_interval_seconds
        )
        self.auditor = auditor or BalanceAuditor(ctx, token_contract=cfg.contracts.token_name)
        self._l1_resolver = ResourceResolver(ctx.l1_ledger, bridge)
        self._l2_resolver = ResourceResolver(ctx.l2_ledger, bridge)
        self._depositor = DepositCoordinator(bridge)

    def steps(self) -> List[Tuple[str, Callable[[FlowState], FlowState]]]:
        return [(name, getattr(self, f"step_{name}")) for name in STEPS]

    # -------------
    # Steps
    # -------------

    def step_resolve_token(self, state: FlowState) -> FlowState:
        # The factory is bound to the L2 token, so the token is resolved for native runs too.
        c = self.cfg.contracts
        token = self._l1_resolver.resolve(
            resource_spec(c.token_name, self.cfg.overrides.token, (c.token_initial_supply,))
        )
        l2_token = self._l1_resolver.resolve_counterpart(token.address)
        print(f"[flow] Token L1: {token.address} L2: {l2_token}")
        self.auditor.l1_token = token.address
        self.auditor.l2_token = l2_token
        return replace(state, l1_token=token, l2_token=l2_token)

    def step_deposit(self, state: FlowState) -> FlowState:
        _require(state, "deposit", "l1_token")
        intent = DepositIntent(
            asset=self.cfg.asset,
            amount=self.cfg.deposit_amount,
            source=self.ctx.l1.address,
            token=state.l1_token.address,
        )
        receipt = self._depositor.deposit(intent)
        self.run_log.log(
            "deposit",
            asset=self.cfg.asset.value,
            tx_hash=receipt.tx_hash,
            sequence_numbers=list(receipt.sequence_numbers),
            amount=intent.amount,
        )
        return replace(state, deposit=receipt)

    def step_track(self, state: FlowState) -> FlowState:
        _require(state, "track", "deposit")
        message = self.tracker.track(state.deposit, self.cfg.asset, self.cfg.timing.l2_tx_timeout_seconds)
        return replace(state, message=message)

    def step_resolve_master(self, state: FlowState) -> FlowState:
        c = self.cfg.contracts
        master = self._l2_resolver.resolve(resource_spec(c.master_name, self.cfg.overrides.master))
        return replace(state, master=master)

    def step_resolve_factory(self, state: FlowState) -> FlowState:
        _require(state, "resolve_factory", "master", "l2_token")
        c = self.cfg.contracts
        factory = self._l2_resolver.resolve(
            resource_spec(c.factory_name, self.cfg.overrides.factory, (state.l2_token, state.master.address))
        )
        return replace(state, factory=factory)

    def step_provision_child(self, state: FlowState) -> FlowState:
        _require(state, "provision_child", "factory", "l2_token")
        c = self.cfg.contracts
        provisioner = ChildProvisioner(
            self.ctx.l2_ledger,
            factory_address=state.factory.address,
            asset=self.cfg.asset,
            amount=self.cfg.deposit_amount,
            token_contract=c.token_name,
            child_contract=c.master_name,
            factory_contract=c.factory_name,
        )
        child = provisioner.provision(c.child_id, state.l2_token, override=self.cfg.overrides.child)
        return replace(state, child=child)

    def step_withdraw(self, state: FlowState) -> FlowState:
        if self.cfg.withdraw_amount is None:
            print("[flow] No withdrawal amount configured; skipping withdrawal")
            return replace(state, skipped=state.skipped + ("withdraw",))
        _require(state, "withdraw", "child", "l1_token")
        coordinator = WithdrawalCoordinator(
            self.ctx.l2_ledger,
            self.bridge,
            l1_token=state.l1_token.address,
            child_contract=self.cfg.contracts.master_name,
        )
        intent = WithdrawalIntent(asset=self.cfg.asset, amount=self.cfg.withdraw_amount, source=self.ctx.l2.address)
        return replace(state, withdrawal=coordinator.withdraw(state.child, intent))

    # -------------
    # Runner
    # -------------

    def _sample(self, phase: str, state: FlowState) -> None:
        child = state.child.address if state.child is not None else None
        frame = self.auditor.sample(phase, child=child)
        self.run_log.log("balances", phase=phase, rows=frame.to_dict(orient="records"))

    def run(self) -> FlowOutcome:
        cfg = self.cfg
        self.run_log.log(
            "run_start",
            backend=cfg.backend,
            asset=cfg.asset.value,
            deposit_amount=cfg.deposit_amount,
            withdraw_amount=cfg.withdraw_amount,
            l1_address=self.ctx.l1.address,
            l2_address=self.ctx.l2.address,
            l1_endpoint=self.ctx.l1.endpoint,
            l2_endpoint=self.ctx.l2.endpoint,
        )
        print(f"[flow] run_id={self.run_log.run_id} asset={cfg.asset.value} backend={cfg.backend}")

        state = FlowState()
        error: Optional[BridgeFlowError] = None
        failed_step: Optional[str] = None

        for name, step in self.steps():
            self.run_log.log("step_start", step=name)
            try:
                state = step(state)
            except BridgeFlowError as exc:
                exc.step = name
                error, failed_step = exc, name
                print(f"[flow] Step {name} failed: {exc}")
                self.run_log.log("step_failed", step=name, error_type=type(exc).__name__, error=str(exc))
                break
            if name not in state.skipped:
                state = replace(state, completed=state.completed + (name,))
            self.run_log.log("step_done", step=name, state=_step_summary(name, state))
            phase = PHASE_AFTER_STEP.get(name)
            if phase is not None:
                self._sample(phase, state)

        self.run_log.log(
            "run_end",
            ok=error is None,
            failed_step=failed_step,
            completed=list(state.completed),
            skipped=list(state.skipped),
        )
        return FlowOutcome(
            run_id=self.run_log.run_id,
            state=state,
            error=error,
            failed_step=failed_step,
            log_path=self.run_log.path,
            balances=self.auditor.history(),
        )


def _require(state: FlowState, step: str, *names: str) -> None:
    missing = [n for n in names if getattr(state, n) is None]
    if missing:
        raise StepOrderError(f"Step {step} needs {', '.join(missing)} from an earlier step")


def _step_summary(name: str, state: FlowState) -> object:
    if name == "resolve_token":
        return {"l1_token": state.l1_token, "l2_token": state.l2_token}
    if name == "deposit" and state.deposit is not None:
        return {"tx_hash": state.deposit.tx_hash, "sequence_numbers": state.deposit.sequence_numbers}
    if name == "track" and state.message is not None:
        m = state.message
        return {"sequence_number": m.sequence_number, "l2_tx_hash": m.l2_tx_hash, "status": m.status}
    if name == "resolve_master":
        return state.master
    if name == "resolve_factory":
        return state.factory
    if name == "provision_child":
        return state.child
    if name == "withdraw" and state.withdrawal is not None:
        return {"tx_hash": state.withdrawal.tx_hash, "event": state.withdrawal.event}
    return None


def make_backend(cfg: FlowConfig) -> Tuple[LedgerContext, Bridge]:
    """Construct the ledger context and bridge for ``cfg.backend``.

    Supported backends:
    - "SIM"  -> in-memory two-ledger simulation (``bridgeflow.simulated``).
    - "WEB3" -> JSON-RPC ledgers and the Arbitrum bridge contracts.
    """

    backend_eff = cfg.backend.upper()

    if backend_eff == "SIM":
        from bridgeflow.simulated import make_simulated_backend

        sim = make_simulated_backend()
        return sim.ctx, sim.bridge
    elif backend_eff == "WEB3":  # pragma: no cover - needs live endpoints
        from bridgeflow.arbitrum_bridge import ArbitrumBridge, ArbitrumBridgeConfig
        from bridgeflow.artifacts import ArtifactStore
        from bridgeflow.web3_ledger import Web3Ledger, Web3LedgerConfig

        ep = cfg.endpoints
        if not (ep.l1_rpc and ep.l2_rpc and ep.private_key):
            raise ConfigurationError("WEB3 backend requires L1RPC, L2RPC and DEVNET_PRIVKEY")
        store = ArtifactStore(cfg.contracts.artifacts_dir)
        timeout = cfg.timing.receipt_timeout_seconds
        l1 = Web3Ledger("l1", Web3LedgerConfig(ep.l1_rpc, ep.private_key, receipt_timeout_seconds=timeout), store)
        l2 = Web3Ledger("l2", Web3LedgerConfig(ep.l2_rpc, ep.private_key, receipt_timeout_seconds=timeout), store)
        ctx = LedgerContext.from_ledgers(l1, l2, l1_endpoint=ep.l1_rpc, l2_endpoint=ep.l2_rpc)
        return ctx, ArbitrumBridge(ctx, ArbitrumBridgeConfig.from_bridge_config(cfg.bridge))
    else:
        raise ConfigurationError(f"Unsupported backend: {backend_eff!r}")


def run_flow(cfg: FlowConfig, *, run_id: Optional[str] = None, log_to_disk: bool = True) -> FlowOutcome:
    """Build the backend for ``cfg`` and run the whole flow once."""

    ctx, bridge = make_backend(cfg)
    log_dir = Path(cfg.log_dir) if cfg.log_dir else None
    run_log = RunLog.create(asset=cfg.asset.value, run_id=run_id, log_dir=log_dir, enabled=log_to_disk)
    return BridgeFlow(ctx, bridge, cfg, run_log=run_log).run()
