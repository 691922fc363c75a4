"""Tests for bridgeflow.withdrawal.WithdrawalCoordinator (L2 -> L1)."""
from __future__ import annotations

import pytest

from bridgeflow.children import ChildProvisioner
from bridgeflow.deposit import DepositCoordinator
from bridgeflow.errors import MalformedReceiptError, ProvisioningError, SubmissionError
from bridgeflow.models import AssetKind, ChildHandle, DeployNew, DepositIntent, TxReceipt, WithdrawalIntent
from bridgeflow.resources import ResourceResolver
from bridgeflow.simulated import make_simulated_backend
from bridgeflow.withdrawal import WithdrawalCoordinator


def _factory(sim, l2_token: str) -> str:
    resolver = ResourceResolver(sim.ctx.l2_ledger)
    master = resolver.resolve(DeployNew(name="ChildContract")).address
    return resolver.resolve(DeployNew(name="ContractFactory", args=(l2_token, master))).address


def _bridged_token(sim, amount: int) -> tuple[str, str]:
    """Deploy an L1 token and bridge ``amount`` of it so the L2 token exists."""

    l1_token = ResourceResolver(sim.ctx.l1_ledger).resolve(DeployNew(name="DappToken3", args=(100000,))).address
    DepositCoordinator(sim.bridge).deposit(
        DepositIntent(asset=AssetKind.FUNGIBLE, amount=amount, source=sim.ctx.l1.address, token=l1_token)
    )
    sim.bridge.include_all()
    return l1_token, sim.bridge.l2_token_address(l1_token)


def test_native_withdrawal_from_funded_child() -> None:
    sim = make_simulated_backend()
    l2 = sim.ctx.l2_ledger
    l2_token = sim.bridge.l2_token_address("0x" + "cd" * 20)
    factory = _factory(sim, l2_token)
    child = ChildProvisioner(l2, factory_address=factory, asset=AssetKind.NATIVE, amount=10**16).provision(
        123, l2_token
    )

    result = WithdrawalCoordinator(l2, sim.bridge).withdraw(
        child, WithdrawalIntent(asset=AssetKind.NATIVE, amount=10**16, source=l2.address)
    )

    assert result.event.amount == 10**16
    assert result.event.token is None
    assert result.event.destination == l2.address
    assert l2.native_balance(child.address) == 0
    assert result.tx_hash in sim.l2_chain.receipts


def test_token_withdrawal_from_funded_child() -> None:
    sim = make_simulated_backend()
    l2 = sim.ctx.l2_ledger
    l1_token, l2_token = _bridged_token(sim, 1000)
    factory = _factory(sim, l2_token)
    child = ChildProvisioner(l2, factory_address=factory, asset=AssetKind.FUNGIBLE, amount=1000).provision(
        123, l2_token
    )

    result = WithdrawalCoordinator(l2, sim.bridge, l1_token=l1_token).withdraw(
        child, WithdrawalIntent(asset=AssetKind.FUNGIBLE, amount=1000, source=l2.address)
    )

    assert result.event.amount == 1000
    assert result.event.token == l1_token
    assert len(result.all_events) == 1
    assert l2.call(l2_token, "DappToken3", "balanceOf", [child.address]) == 0
    # Burned on L2 by the gateway.
    assert l2.call(l2_token, "DappToken3", "balanceOf", [l2.address]) == 0


def test_unfunded_child_is_rejected() -> None:
    sim = make_simulated_backend()
    l2 = sim.ctx.l2_ledger
    child = ChildHandle(identifier=123, address="0x" + "ab" * 20, funded=False)

    with pytest.raises(ProvisioningError):
        WithdrawalCoordinator(l2, sim.bridge).withdraw(
            child, WithdrawalIntent(asset=AssetKind.NATIVE, amount=1, source=l2.address)
        )
    assert sim.l2_chain.transactions == []


def test_token_withdrawal_without_l1_token_is_a_submission_error() -> None:
    sim = make_simulated_backend()
    l2 = sim.ctx.l2_ledger
    child = ChildHandle(identifier=123, address="0x" + "ab" * 20, funded=True)

    with pytest.raises(SubmissionError):
        WithdrawalCoordinator(l2, sim.bridge).withdraw(
            child, WithdrawalIntent(asset=AssetKind.FUNGIBLE, amount=1, source=l2.address)
        )


def test_reverted_child_withdrawal_is_a_submission_error() -> None:
    sim = make_simulated_backend()
    l2 = sim.ctx.l2_ledger
    # Funded flag set but no contract behind the address: the child call reverts.
    child = ChildHandle(identifier=123, address="0x" + "ab" * 20, funded=True)

    with pytest.raises(SubmissionError):
        WithdrawalCoordinator(l2, sim.bridge).withdraw(
            child, WithdrawalIntent(asset=AssetKind.NATIVE, amount=10**15, source=l2.address)
        )


class _SilentBridge:
    """Bridge stub whose withdrawals confirm without any withdrawal event."""

    def __init__(self, ledger) -> None:
        self._ledger = ledger

    def withdraw_eth(self, amount):
        return self._ledger.send_value(self._ledger.address, 0)

    def withdrawals_in_l2_transaction(self, receipt: TxReceipt):
        return []


def test_missing_withdrawal_event_is_malformed() -> None:
    sim = make_simulated_backend()
    l2 = sim.ctx.l2_ledger
    l2_token = sim.bridge.l2_token_address("0x" + "cd" * 20)
    factory = _factory(sim, l2_token)
    child = ChildProvisioner(l2, factory_address=factory, asset=AssetKind.NATIVE, amount=10**16).provision(
        123, l2_token
    )

    with pytest.raises(MalformedReceiptError):
        WithdrawalCoordinator(l2, _SilentBridge(l2)).withdraw(  # type: ignore[arg-type]
            child, WithdrawalIntent(asset=AssetKind.NATIVE, amount=10**16, source=l2.address)
        )
