"""Pytest configuration to make the project root importable as a package.

This ensures that ``import bridgeflow`` works when tests are run from the
repository root or other locations without installing the project.
"""

import os
import sys

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


FLOW_ENV_VARS = (
    "L1RPC",
    "L2RPC",
    "DEVNET_PRIVKEY",
    "ETH_FLAG",
    "DEPOSIT_AMOUNT",
    "ETH_DEPOSIT",
    "WITHDRAW_AMOUNT",
    "ETH_WITHDRAWAL",
    "DAPP_CONTRACT",
    "MASTER_CONTRACT",
    "FACTORY_CONTRACT",
    "CHILD_CONTRACT",
    "CHILD_ID",
    "TOKEN_INITIAL_SUPPLY",
    "L2_TX_TIMEOUT_SECONDS",
    "L2_POLL_INTERVAL_SECONDS",
    "RECEIPT_TIMEOUT_SECONDS",
    "BRIDGE_INBOX",
    "BRIDGE_L1_GATEWAY_ROUTER",
    "BRIDGE_L2_GATEWAY_ROUTER",
    "ARB_SYS",
    "BRIDGEFLOW_BACKEND",
    "BRIDGEFLOW_LOG_DIR",
    "ARTIFACTS_DIR",
    "MAX_SUBMISSION_COST",
    "L2_MAX_GAS",
    "L2_GAS_PRICE_BID",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every flow-related environment variable for the test."""

    for name in FLOW_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class FakeClock:
    """Manual clock whose ``sleep`` advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
