# bridgeflow/config.py

import os
from dataclasses import dataclass, field
from typing import Optional

from web3 import Web3

from bridgeflow.errors import ConfigurationError
from bridgeflow.models import AssetKind

# --- Base paths ---
# Project root can be overridden if needed (e.g. for tests or deployment)
BASE_DIR = os.path.abspath(os.getenv("BRIDGEFLOW_BASE_DIR", os.path.join(os.path.dirname(__file__), "..")))

# ArbSys precompile lives at a fixed address on every Arbitrum chain.
ARB_SYS_ADDRESS = "0x0000000000000000000000000000000000000064"

SUPPORTED_BACKENDS = ("WEB3", "SIM")


def _env_flag(name: str) -> bool:
    """True unless the variable is unset, empty, or one of 0/false/no/off (case-insensitive)."""

    raw = os.getenv(name, "")
    return raw.strip().lower() not in {"", "0", "false", "no", "off"}


def _env_opt(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid {name}: {raw!r} (expected an integer)") from exc


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid {name}: {raw!r} (expected a number)") from exc


# ---------------------------
# Structured configuration
# ---------------------------

@dataclass(frozen=True)
class EndpointsConfig:
    """Ledger endpoints and the single signing key used on both of them.

    Values come from ``L1RPC``, ``L2RPC`` and ``DEVNET_PRIVKEY``.
    """

    l1_rpc: Optional[str] = field(default_factory=lambda: _env_opt("L1RPC"))
    l2_rpc: Optional[str] = field(default_factory=lambda: _env_opt("L2RPC"))
    private_key: Optional[str] = field(default_factory=lambda: _env_opt("DEVNET_PRIVKEY"))


@dataclass(frozen=True)
class AmountsConfig:
    """Raw (unparsed) amounts as given in the environment.

    ``ETH_DEPOSIT`` / ``ETH_WITHDRAWAL`` are ether strings ("0.01");
    ``DEPOSIT_AMOUNT`` / ``WITHDRAW_AMOUNT`` are raw token units.
    """

    eth_flag: bool = field(default_factory=lambda: _env_flag("ETH_FLAG"))
    deposit_amount: str = field(default_factory=lambda: os.getenv("DEPOSIT_AMOUNT", "1000"))
    eth_deposit: str = field(default_factory=lambda: os.getenv("ETH_DEPOSIT", "0.01"))
    withdraw_amount: Optional[str] = field(default_factory=lambda: _env_opt("WITHDRAW_AMOUNT"))
    eth_withdrawal: Optional[str] = field(default_factory=lambda: _env_opt("ETH_WITHDRAWAL"))


@dataclass(frozen=True)
class OverridesConfig:
    """Optional addresses that switch a resource from "deploy" to "reuse"."""

    token: Optional[str] = field(default_factory=lambda: _env_opt("DAPP_CONTRACT"))
    master: Optional[str] = field(default_factory=lambda: _env_opt("MASTER_CONTRACT"))
    factory: Optional[str] = field(default_factory=lambda: _env_opt("FACTORY_CONTRACT"))
    child: Optional[str] = field(default_factory=lambda: _env_opt("CHILD_CONTRACT"))


@dataclass(frozen=True)
class ContractsConfig:
    """Contract names (artifact names) and deployment defaults."""

    token_name: str = "DappToken3"
    master_name: str = "ChildContract"
    factory_name: str = "ContractFactory"
    child_id: int = field(default_factory=lambda: _env_int("CHILD_ID", "123"))
    token_initial_supply: int = field(default_factory=lambda: _env_int("TOKEN_INITIAL_SUPPLY", "100000"))
    artifacts_dir: str = field(
        default_factory=lambda: os.getenv("ARTIFACTS_DIR", os.path.join(BASE_DIR, "artifacts"))
    )


@dataclass(frozen=True)
class BridgeConfig:
    """Bridge contract addresses and the opaque fee inputs forwarded to them."""

    inbox: Optional[str] = field(default_factory=lambda: _env_opt("BRIDGE_INBOX"))
    l1_gateway_router: Optional[str] = field(default_factory=lambda: _env_opt("BRIDGE_L1_GATEWAY_ROUTER"))
    l2_gateway_router: Optional[str] = field(default_factory=lambda: _env_opt("BRIDGE_L2_GATEWAY_ROUTER"))
    arb_sys: str = field(default_factory=lambda: os.getenv("ARB_SYS", ARB_SYS_ADDRESS))
    max_submission_cost: int = field(default_factory=lambda: _env_int("MAX_SUBMISSION_COST", "10000000000000"))
    l2_max_gas: int = field(default_factory=lambda: _env_int("L2_MAX_GAS", "300000"))
    l2_gas_price_bid: int = field(default_factory=lambda: _env_int("L2_GAS_PRICE_BID", "1000000000"))


@dataclass(frozen=True)
class TimingConfig:
    """Wait bounds. The L2 inclusion wait defaults to 10 minutes."""

    l2_tx_timeout_seconds: float = field(default_factory=lambda: _env_float("L2_TX_TIMEOUT_SECONDS", "600"))
    poll_interval_seconds: float = field(default_factory=lambda: _env_float("L2_POLL_INTERVAL_SECONDS", "5"))
    receipt_timeout_seconds: float = field(default_factory=lambda: _env_float("RECEIPT_TIMEOUT_SECONDS", "300"))


@dataclass(frozen=True)
class RuntimeConfig:
    backend: str = field(default_factory=lambda: os.getenv("BRIDGEFLOW_BACKEND", "WEB3").upper())
    log_dir: Optional[str] = field(default_factory=lambda: _env_opt("BRIDGEFLOW_LOG_DIR"))


@dataclass(frozen=True)
class FlowConfig:
    """Concrete, validated configuration for one flow run.

    Amounts are parsed into the asset's smallest unit. ``withdraw_amount`` is
    None when no withdrawal amount was configured, in which case the flow
    stops after funding the child.
    """

    backend: str
    asset: AssetKind
    deposit_amount: int
    withdraw_amount: Optional[int]
    endpoints: EndpointsConfig
    overrides: OverridesConfig
    contracts: ContractsConfig
    bridge: BridgeConfig
    timing: TimingConfig
    log_dir: Optional[str] = None


def parse_amount(raw: Optional[str], asset: AssetKind, *, what: str) -> Optional[int]:
    """Parse an env/CLI amount into smallest units.

    NATIVE amounts are ether strings converted to wei; FUNGIBLE amounts are
    integers. Returns None for a missing value; rejects zero, negatives and
    garbage with ``ConfigurationError``.
    """

    if raw is None or not str(raw).strip():
        return None
    text = str(raw).strip()
    try:
        if asset is AssetKind.NATIVE:
            value = int(Web3.to_wei(text, "ether"))
        else:
            value = int(text)
    except (ValueError, ArithmeticError) as exc:
        raise ConfigurationError(f"Invalid {what}: {text!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{what} must be positive, got {text!r}")
    return value


def get_flow_config(
    *,
    backend: str | None = None,
    eth_flag: bool | None = None,
    deposit_amount: str | None = None,
    withdraw_amount: str | None = None,
    l2_tx_timeout_seconds: float | None = None,
    log_dir: str | None = None,
) -> FlowConfig:
    """Return a validated ``FlowConfig`` built from the environment.

    Keyword arguments (typically from the CLI) override the corresponding
    environment values. Raises ``ConfigurationError`` for anything missing
    that the selected backend needs.
    """

    runtime = RuntimeConfig()
    amounts = AmountsConfig()
    endpoints = EndpointsConfig()
    bridge = BridgeConfig()
    timing = TimingConfig()

    backend_eff = (backend or runtime.backend).upper()
    if backend_eff not in SUPPORTED_BACKENDS:
        raise ConfigurationError(f"Unsupported backend: {backend_eff!r}; expected one of {SUPPORTED_BACKENDS}")

    native = amounts.eth_flag if eth_flag is None else bool(eth_flag)
    asset = AssetKind.NATIVE if native else AssetKind.FUNGIBLE

    if asset is AssetKind.NATIVE:
        dep_raw = deposit_amount or amounts.eth_deposit
        wd_raw = withdraw_amount or amounts.eth_withdrawal
    else:
        dep_raw = deposit_amount or amounts.deposit_amount
        wd_raw = withdraw_amount or amounts.withdraw_amount

    dep = parse_amount(dep_raw, asset, what="deposit amount")
    if dep is None:
        raise ConfigurationError("Missing deposit amount (set ETH_DEPOSIT or DEPOSIT_AMOUNT)")
    wd = parse_amount(wd_raw, asset, what="withdrawal amount")

    if backend_eff == "WEB3":
        missing = [
            name
            for name, value in (
                ("L1RPC", endpoints.l1_rpc),
                ("L2RPC", endpoints.l2_rpc),
                ("DEVNET_PRIVKEY", endpoints.private_key),
                ("BRIDGE_INBOX", bridge.inbox),
                ("BRIDGE_L1_GATEWAY_ROUTER", bridge.l1_gateway_router),
                ("BRIDGE_L2_GATEWAY_ROUTER", bridge.l2_gateway_router),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    if l2_tx_timeout_seconds is not None:
        timing = TimingConfig(
            l2_tx_timeout_seconds=float(l2_tx_timeout_seconds),
            poll_interval_seconds=timing.poll_interval_seconds,
            receipt_timeout_seconds=timing.receipt_timeout_seconds,
        )
    for name, value in (
        ("L2_TX_TIMEOUT_SECONDS", timing.l2_tx_timeout_seconds),
        ("L2_POLL_INTERVAL_SECONDS", timing.poll_interval_seconds),
        ("RECEIPT_TIMEOUT_SECONDS", timing.receipt_timeout_seconds),
    ):
        # `not > 0` also rejects NaN.
        if not value > 0:
            raise ConfigurationError(f"{name} must be positive, got {value}")

    return FlowConfig(
        backend=backend_eff,
        asset=asset,
        deposit_amount=dep,
        withdraw_amount=wd,
        endpoints=endpoints,
        overrides=OverridesConfig(),
        contracts=ContractsConfig(),
        bridge=bridge,
        timing=timing,
        log_dir=log_dir or runtime.log_dir,
    )
