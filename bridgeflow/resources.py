"""Deploy-or-reuse resolution of on-chain resources.

A resource (token, master template, factory) is described by a tagged
``ResourceSpec``: ``UseExisting(address)`` binds directly without any
deployment or existence check, ``DeployNew(args)`` submits exactly one
deployment and waits for it. Repeated runs are idempotent only when the
caller feeds the resulting address back in as an override.
"""
from __future__ import annotations

from bridgeflow.bridge import Bridge
from bridgeflow.errors import ConfigurationError, LedgerTransactionError, ProvisioningError
from bridgeflow.ledger import Ledger
from bridgeflow.models import DeployNew, ResolvedResource, ResourceSpec, UseExisting, ZERO_ADDRESS


class ResourceResolver:
    """Resolve resources on one ledger."""

    def __init__(self, ledger: Ledger, bridge: Bridge | None = None) -> None:
        self._ledger = ledger
        self._bridge = bridge

    def resolve(self, spec: ResourceSpec) -> ResolvedResource:
        if isinstance(spec, UseExisting):
            print(f"[resources] Using deployed {spec.name} at {spec.address} on {self._ledger.name}")
            return ResolvedResource(name=spec.name, address=spec.address, newly_deployed=False)

        if not isinstance(spec, DeployNew):  # pragma: no cover - unreachable with the union
            raise TypeError(f"Unsupported resource spec: {spec!r}")

        print(f"[resources] Deploying {spec.name} to {self._ledger.name}")
        try:
            receipt = self._ledger.deploy(spec.name, spec.args).wait()
        except (LedgerTransactionError, ConfigurationError) as exc:
            raise ProvisioningError(f"Deployment of {spec.name} failed: {exc}") from exc

        if not receipt.contract_address:
            raise ProvisioningError(f"Deployment of {spec.name} confirmed without a contract address ({receipt.tx_hash})")

        print(f"[resources] {spec.name} is deployed to {self._ledger.name} at {receipt.contract_address}")
        return ResolvedResource(name=spec.name, address=receipt.contract_address, newly_deployed=True)

    def resolve_counterpart(self, l1_token: str) -> str:
        """Return the L2 address of ``l1_token`` as mapped by the bridge."""

        if self._bridge is None:
            raise ProvisioningError("No bridge available to map the L2 counterpart")
        try:
            address = self._bridge.l2_token_address(l1_token)
        except LedgerTransactionError as exc:
            raise ProvisioningError(f"Bridge could not map {l1_token} to L2: {exc}") from exc
        if not address or address.lower() == ZERO_ADDRESS:
            raise ProvisioningError(f"Bridge returned no L2 counterpart for {l1_token}")
        return address
