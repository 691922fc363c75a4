"""Compiled contract artifacts.

Compilation is out of scope: contracts are compiled elsewhere (e.g. by
Hardhat) and this module only reads the resulting JSON files. The expected
layout is Hardhat's ``artifacts/contracts/<File>.sol/<Name>.json`` with
``abi`` and ``bytecode`` keys, but any ``<Name>.json`` below the artifacts
directory is accepted.

Bridge contracts that are never deployed by the flow are registered with an
ABI only (see ``bridgeflow.arbitrum_bridge``).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from bridgeflow.errors import ConfigurationError


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    abi: List[Dict[str, Any]]
    bytecode: Optional[str] = None

    @property
    def deployable(self) -> bool:
        return bool(self.bytecode) and self.bytecode not in {"0x", "0x0"}


def load_artifact_file(path: Path) -> ContractArtifact:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or "abi" not in data:
        raise ConfigurationError(f"Not a contract artifact (no 'abi'): {path}")
    name = str(data.get("contractName") or path.stem)
    return ContractArtifact(name=name, abi=list(data["abi"]), bytecode=data.get("bytecode"))


class ArtifactStore:
    """Name → artifact lookup with a small in-memory cache."""

    def __init__(self, root: Optional[str | Path] = None) -> None:
        self._root = Path(root) if root else None
        self._cache: Dict[str, ContractArtifact] = {}

    def register(self, name: str, abi: List[Dict[str, Any]], bytecode: Optional[str] = None) -> None:
        self._cache[name] = ContractArtifact(name=name, abi=list(abi), bytecode=bytecode)

    def _find(self, name: str) -> Optional[Path]:
        if self._root is None or not self._root.exists():
            return None
        for p in sorted(self._root.rglob(f"{name}.json")):
            # Hardhat also writes <Name>.dbg.json next to the artifact.
            if p.name.endswith(".dbg.json"):
                continue
            return p
        return None

    def get(self, name: str) -> ContractArtifact:
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        path = self._find(name)
        if path is None:
            raise ConfigurationError(
                f"No compiled artifact for contract {name!r} under {self._root or '<no artifacts dir>'}",
            )
        artifact = load_artifact_file(path)
        self._cache[name] = artifact
        return artifact
