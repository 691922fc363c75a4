"""Tests for bridgeflow.config.get_flow_config and amount parsing."""
from __future__ import annotations

import pytest

from bridgeflow.config import ContractsConfig, OverridesConfig, TimingConfig, get_flow_config, parse_amount
from bridgeflow.errors import ConfigurationError
from bridgeflow.models import AssetKind


def test_native_amounts_are_parsed_as_ether(clean_env) -> None:
    clean_env.setenv("ETH_FLAG", "1")
    clean_env.setenv("ETH_DEPOSIT", "0.01")

    cfg = get_flow_config(backend="SIM")

    assert cfg.asset is AssetKind.NATIVE
    assert cfg.deposit_amount == 10**16
    assert cfg.withdraw_amount is None


def test_fungible_defaults_and_withdraw_amount(clean_env) -> None:
    clean_env.setenv("WITHDRAW_AMOUNT", "400")

    cfg = get_flow_config(backend="SIM")

    assert cfg.asset is AssetKind.FUNGIBLE
    assert cfg.deposit_amount == 1000
    assert cfg.withdraw_amount == 400


def test_keyword_overrides_take_precedence(clean_env) -> None:
    clean_env.setenv("DEPOSIT_AMOUNT", "5")
    clean_env.setenv("ETH_FLAG", "1")

    cfg = get_flow_config(
        backend="sim",
        eth_flag=False,
        deposit_amount="77",
        withdraw_amount="7",
        l2_tx_timeout_seconds=12.5,
        log_dir="/tmp/flows",
    )

    assert cfg.backend == "SIM"
    assert cfg.asset is AssetKind.FUNGIBLE
    assert cfg.deposit_amount == 77
    assert cfg.withdraw_amount == 7
    assert cfg.timing.l2_tx_timeout_seconds == 12.5
    assert cfg.log_dir == "/tmp/flows"


def test_eth_flag_false_values(clean_env) -> None:
    clean_env.setenv("ETH_FLAG", "false")
    assert get_flow_config(backend="SIM").asset is AssetKind.FUNGIBLE


def test_web3_backend_requires_endpoints_and_key(clean_env) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        get_flow_config(backend="WEB3")

    message = str(excinfo.value)
    for name in ("L1RPC", "L2RPC", "DEVNET_PRIVKEY", "BRIDGE_INBOX"):
        assert name in message


def test_web3_backend_accepts_complete_environment(clean_env) -> None:
    clean_env.setenv("L1RPC", "http://localhost:8545")
    clean_env.setenv("L2RPC", "http://localhost:8547")
    clean_env.setenv("DEVNET_PRIVKEY", "0x" + "11" * 32)
    clean_env.setenv("BRIDGE_INBOX", "0x" + "10" * 20)
    clean_env.setenv("BRIDGE_L1_GATEWAY_ROUTER", "0x" + "11" * 20)
    clean_env.setenv("BRIDGE_L2_GATEWAY_ROUTER", "0x" + "21" * 20)

    cfg = get_flow_config()

    assert cfg.backend == "WEB3"
    assert cfg.endpoints.l1_rpc == "http://localhost:8545"


def test_unsupported_backend(clean_env) -> None:
    with pytest.raises(ConfigurationError):
        get_flow_config(backend="IBKR")


def test_non_positive_timeout_is_rejected(clean_env) -> None:
    with pytest.raises(ConfigurationError):
        get_flow_config(backend="SIM", l2_tx_timeout_seconds=0)


@pytest.mark.parametrize(
    "raw,asset,expected",
    [
        ("0.01", AssetKind.NATIVE, 10**16),
        ("1", AssetKind.NATIVE, 10**18),
        ("1000", AssetKind.FUNGIBLE, 1000),
        (None, AssetKind.FUNGIBLE, None),
        ("  ", AssetKind.NATIVE, None),
    ],
)
def test_parse_amount(raw, asset, expected) -> None:
    assert parse_amount(raw, asset, what="amount") == expected


@pytest.mark.parametrize(
    "raw,asset",
    [
        ("abc", AssetKind.NATIVE),
        ("abc", AssetKind.FUNGIBLE),
        ("0", AssetKind.FUNGIBLE),
        ("-5", AssetKind.FUNGIBLE),
        ("0", AssetKind.NATIVE),
        ("1.5", AssetKind.FUNGIBLE),
    ],
)
def test_parse_amount_rejects_bad_values(raw, asset) -> None:
    with pytest.raises(ConfigurationError):
        parse_amount(raw, asset, what="amount")


def test_env_defaults(clean_env) -> None:
    clean_env.setenv("FACTORY_CONTRACT", "0x" + "fa" * 20)
    clean_env.setenv("CHILD_CONTRACT", "0x" + "cc" * 20)

    overrides = OverridesConfig()
    contracts = ContractsConfig()
    timing = TimingConfig()

    # The factory override is read from its own variable.
    assert overrides.factory == "0x" + "fa" * 20
    assert overrides.child == "0x" + "cc" * 20
    assert overrides.token is None
    assert contracts.child_id == 123
    assert contracts.token_initial_supply == 100000
    assert timing.l2_tx_timeout_seconds == 600
    assert timing.poll_interval_seconds == 5


@pytest.mark.parametrize(
    "name,value",
    [
        ("L2_TX_TIMEOUT_SECONDS", "0"),
        ("L2_TX_TIMEOUT_SECONDS", "-5"),
        ("L2_POLL_INTERVAL_SECONDS", "0"),
        ("RECEIPT_TIMEOUT_SECONDS", "-1"),
        ("L2_TX_TIMEOUT_SECONDS", "nan"),
    ],
)
def test_non_positive_timing_from_environment_is_rejected(clean_env, name, value) -> None:
    clean_env.setenv(name, value)

    with pytest.raises(ConfigurationError) as excinfo:
        get_flow_config(backend="SIM", eth_flag=True, deposit_amount="0.01")
    assert name in str(excinfo.value)


def test_timeout_flag_overrides_bad_environment_value(clean_env) -> None:
    clean_env.setenv("L2_TX_TIMEOUT_SECONDS", "0")

    cfg = get_flow_config(backend="SIM", l2_tx_timeout_seconds=30)

    assert cfg.timing.l2_tx_timeout_seconds == 30


@pytest.mark.parametrize(
    "name",
    ["CHILD_ID", "TOKEN_INITIAL_SUPPLY", "MAX_SUBMISSION_COST", "L2_MAX_GAS", "L2_GAS_PRICE_BID", "L2_POLL_INTERVAL_SECONDS"],
)
def test_non_numeric_environment_values_raise_configuration_error(clean_env, name) -> None:
    clean_env.setenv(name, "abc")

    with pytest.raises(ConfigurationError) as excinfo:
        get_flow_config(backend="SIM")
    assert f"Invalid {name}" in str(excinfo.value)
