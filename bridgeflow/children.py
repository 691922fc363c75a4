"""Provisioning and funding of per-identifier child contracts on L2.

The factory deploys one clone of the master template per caller-supplied
identifier, at an address that depends only on (factory, identifier).
Creation does not return the address, so it is looked up with a separate
``getChildAddress`` call afterwards.

Funding rules:
- NATIVE: a freshly created child is funded through its payable
  ``receiveEth`` entry point; an externally supplied child gets a plain value
  transfer.
- FUNGIBLE: the factory is approved for the funding amount before creation;
  the amount is then transferred to the child unless it already holds it.

``ChildHandle.funded`` only becomes True after the funding transaction is
confirmed.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from bridgeflow.errors import LedgerTransactionError, ProvisioningError
from bridgeflow.ledger import Ledger
from bridgeflow.models import ZERO_ADDRESS, AssetKind, ChildHandle


class ChildProvisioner:
    def __init__(
        self,
        l2: Ledger,
        *,
        factory_address: str,
        asset: AssetKind,
        amount: int,
        token_contract: str = "DappToken3",
        child_contract: str = "ChildContract",
        factory_contract: str = "ContractFactory",
    ) -> None:
        if int(amount) <= 0:
            raise ValueError(f"Funding amount must be positive, got {amount!r}")
        self._l2 = l2
        self.factory_address = factory_address
        self._asset = asset
        self._amount = int(amount)
        self._token_contract = token_contract
        self._child_contract = child_contract
        self._factory_contract = factory_contract

    def child_address(self, identifier: int) -> str:
        """Deterministic child address for ``identifier`` (pure lookup)."""

        try:
            return str(self._l2.call(self.factory_address, self._factory_contract, "getChildAddress", [int(identifier)]))
        except LedgerTransactionError as exc:
            raise ProvisioningError(f"getChildAddress({identifier}) failed: {exc}") from exc

    def provision(self, identifier: int, token_address: str, *, override: Optional[str] = None) -> ChildHandle:
        if override:
            print(f"[child] Using deployed Child contract {override}")
            handle = ChildHandle(identifier=int(identifier), address=override)
            return self.fund(handle, token_address, fresh=False)

        print(f"[child] Deploying child {identifier} through factory {self.factory_address}")
        try:
            if self._asset is AssetKind.FUNGIBLE:
                self._l2.transact(
                    token_address, self._token_contract, "approve", [self.factory_address, self._amount]
                ).wait()
            self._l2.transact(
                self.factory_address, self._factory_contract, "createChild", [int(identifier), token_address]
            ).wait()
        except LedgerTransactionError as exc:
            raise ProvisioningError(f"createChild({identifier}) failed: {exc}") from exc

        address = self.child_address(identifier)
        if not address or address.lower() == ZERO_ADDRESS:
            raise ProvisioningError(f"Factory returned no address for child {identifier}")
        print(f"[child] Child contract is deployed to L2 at {address}")

        return self.fund(ChildHandle(identifier=int(identifier), address=address), token_address, fresh=True)

    def fund(self, handle: ChildHandle, token_address: str, *, fresh: bool) -> ChildHandle:
        try:
            if self._asset is AssetKind.NATIVE:
                print(f"[child] Depositing {self._amount} wei into child {handle.address}")
                if fresh:
                    pending = self._l2.transact(
                        handle.address, self._child_contract, "receiveEth", [], value=self._amount
                    )
                else:
                    pending = self._l2.send_value(handle.address, self._amount)
                pending.wait()
            else:
                held = int(self._l2.call(token_address, self._token_contract, "balanceOf", [handle.address]))
                if held < self._amount:
                    print(f"[child] Transferring {self._amount} tokens from {self._l2.address} to {handle.address}")
                    self._l2.transact(
                        token_address, self._token_contract, "transfer", [handle.address, self._amount]
                    ).wait()
        except LedgerTransactionError as exc:
            raise ProvisioningError(f"Funding child {handle.identifier} at {handle.address} failed: {exc}") from exc

        return replace(handle, funded=True)
