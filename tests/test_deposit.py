"""Tests for bridgeflow.deposit.DepositCoordinator on the simulated backend."""
from __future__ import annotations

import pytest

from bridgeflow.deposit import DepositCoordinator
from bridgeflow.errors import ApprovalError, SubmissionError
from bridgeflow.models import AssetKind, DeployNew, DepositIntent
from bridgeflow.resources import ResourceResolver
from bridgeflow.simulated import L1_GATEWAY_ADDRESS, make_simulated_backend


def _deploy_l1_token(sim, supply: int = 100000) -> str:
    return ResourceResolver(sim.ctx.l1_ledger).resolve(DeployNew(name="DappToken3", args=(supply,))).address


def test_fungible_deposit_approves_before_depositing() -> None:
    sim = make_simulated_backend()
    token = _deploy_l1_token(sim)
    intent = DepositIntent(asset=AssetKind.FUNGIBLE, amount=1000, source=sim.ctx.l1.address, token=token)

    receipt = DepositCoordinator(sim.bridge).deposit(intent)

    assert sim.bridge.approvals == [(token, 1000)]
    calls = [tx.function for tx in sim.l1_chain.transactions if tx.kind == "call"]
    assert calls == ["approve", "outboundTransfer"]
    assert receipt.sequence_numbers == (1000,)

    l1 = sim.ctx.l1_ledger
    assert l1.call(token, "DappToken3", "balanceOf", [l1.address]) == 99000
    assert l1.call(token, "DappToken3", "balanceOf", [L1_GATEWAY_ADDRESS]) == 1000


def test_native_deposit_is_a_single_value_call() -> None:
    sim = make_simulated_backend()
    l1 = sim.ctx.l1_ledger
    start = l1.native_balance(l1.address)

    receipt = DepositCoordinator(sim.bridge).deposit(
        DepositIntent(asset=AssetKind.NATIVE, amount=10**16, source=l1.address)
    )

    assert sim.bridge.approvals == []
    assert receipt.sequence_numbers == (1000,)
    assert start - l1.native_balance(l1.address) >= 10**16


def test_reverted_deposit_maps_to_submission_error() -> None:
    sim = make_simulated_backend()
    token = _deploy_l1_token(sim, supply=500)
    intent = DepositIntent(asset=AssetKind.FUNGIBLE, amount=1000, source=sim.ctx.l1.address, token=token)

    with pytest.raises(SubmissionError) as excinfo:
        DepositCoordinator(sim.bridge).deposit(intent)

    assert excinfo.value.__cause__ is not None


def test_reverted_approval_maps_to_approval_error_and_stops() -> None:
    sim = make_simulated_backend()
    # No contract at this address: the approval reverts.
    intent = DepositIntent(
        asset=AssetKind.FUNGIBLE, amount=1000, source=sim.ctx.l1.address, token="0x" + "ee" * 20
    )

    with pytest.raises(ApprovalError):
        DepositCoordinator(sim.bridge).deposit(intent)

    calls = [tx.function for tx in sim.l1_chain.transactions if tx.kind == "call"]
    assert "outboundTransfer" not in calls


def test_approval_without_token_is_an_approval_error() -> None:
    sim = make_simulated_backend()
    intent = DepositIntent(asset=AssetKind.NATIVE, amount=10**16, source=sim.ctx.l1.address)

    with pytest.raises(ApprovalError):
        DepositCoordinator(sim.bridge).approve(intent)
    assert sim.l1_chain.transactions == []
