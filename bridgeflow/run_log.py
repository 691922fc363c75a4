"""Per-run JSONL event log.

Every flow run appends its events (step boundaries, the deposit hash and
sequence numbers, balance samples) to ``flow_{asset}_{run_id}.jsonl``. The
file is the operator's record of where a run stopped, and ``bridgeflow track``
reads the latest ``deposit`` event back to resume tracking after a timeout.

Each event is one line written with a single ``write`` followed by flush and
fsync, so a crash can at worst leave a truncated last line. The reader drops
such lines instead of failing.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator

_LOG_NAME = re.compile(r"^flow_([^_]+)_(.+)\.jsonl$")
_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


def default_log_dir() -> Path:
    # <repo>/run_state/flows
    return Path(__file__).resolve().parents[1] / "run_state" / "flows"


def create_run_id(ts: datetime | None = None) -> str:
    """Sortable UTC run id, e.g. ``20260101T120000Z``."""

    return (ts or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")


def make_log_path(*, asset: str, run_id: str, log_dir: Path | None = None) -> Path:
    directory = log_dir or default_log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f"flow_{_UNSAFE.sub('_', asset)}_{_UNSAFE.sub('_', run_id)}.jsonl"


def json_friendly(obj: Any) -> Any:
    """Turn flow values into plain JSON types.

    Enums become their value, bytes become 0x-hex, datetimes become UTC ISO
    strings and dataclasses become dicts (field by field, so a nested ledger
    handle degrades to its ``str``). Integers stay integers: wei amounts are
    beyond 2**53 but Python's json handles arbitrary ints.
    """

    if isinstance(obj, Enum):
        obj = obj.value
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, datetime):
        aware = obj if obj.tzinfo is not None else obj.replace(tzinfo=timezone.utc)
        return aware.astimezone(timezone.utc).isoformat()
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = {f.name: getattr(obj, f.name) for f in fields(obj)}
    if isinstance(obj, dict):
        return {str(k): json_friendly(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [json_friendly(v) for v in obj]
    return str(obj)


def append_event(path: Path, event: dict[str, Any]) -> None:
    """Append ``event`` (stamped with ``ts_utc`` unless present) as one line."""

    record = {"ts_utc": datetime.now(timezone.utc).isoformat(), **event}
    payload = json.dumps(json_friendly(record), ensure_ascii=False) + "\n"

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8", newline="\n") as fh:
        fh.write(payload)
        fh.flush()
        try:
            os.fsync(fh.fileno())
        except OSError:
            pass  # not supported on every filesystem


def _iter_events(path: Path) -> Iterator[dict[str, Any]]:
    with open(path, encoding="utf-8") as fh:
        for raw in fh:
            try:
                obj = json.loads(raw)
            except ValueError:
                continue
            if isinstance(obj, dict):
                yield obj


def read_events(path: Path, *, max_events: int | None = None) -> list[dict[str, Any]]:
    """Events of one log, oldest first; blank, partial or non-object lines are dropped.

    With ``max_events`` only the newest ``max_events`` are returned.
    """

    if not path.exists():
        return []
    events = list(_iter_events(path))
    if max_events is not None:
        events = events[max(len(events) - int(max_events), 0):]
    return events


@dataclass(frozen=True)
class RunLogInfo:
    path: Path
    asset: str
    run_id: str


def list_logs(log_dir: Path | None = None) -> list[RunLogInfo]:
    """Run logs in ``log_dir``, most recently modified first."""

    directory = log_dir or default_log_dir()
    if not directory.is_dir():
        return []

    infos = []
    for p in directory.iterdir():
        m = _LOG_NAME.match(p.name)
        if m:
            infos.append(RunLogInfo(path=p, asset=m.group(1), run_id=m.group(2)))
    return sorted(infos, key=lambda info: info.path.stat().st_mtime, reverse=True)


def latest_event(events: Iterable[dict[str, Any]], event_type: str, **match: Any) -> dict[str, Any] | None:
    """Most recent event of ``event_type`` whose fields equal ``match``."""

    candidates = (
        e for e in reversed(list(events))
        if e.get("type") == event_type and all(e.get(k) == v for k, v in match.items())
    )
    return next(candidates, None)


class RunLog:
    """Writer bound to one run; ``path=None`` disables writing."""

    def __init__(self, path: Path | None, run_id: str) -> None:
        self.path = path
        self.run_id = run_id

    @classmethod
    def create(cls, *, asset: str, run_id: str | None = None, log_dir: Path | None = None, enabled: bool = True) -> "RunLog":
        rid = run_id or create_run_id()
        path = make_log_path(asset=asset, run_id=rid, log_dir=log_dir) if enabled else None
        return cls(path, rid)

    def log(self, event_type: str, **payload: Any) -> None:
        if self.path is not None:
            append_event(self.path, {"type": event_type, "run_id": self.run_id, **payload})
