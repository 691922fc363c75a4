from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from bridgeflow.models import AssetKind
from bridgeflow.run_log import (
    RunLog,
    append_event,
    json_friendly,
    latest_event,
    list_logs,
    make_log_path,
    read_events,
)


def test_append_and_read_events_round_trip(tmp_path: Path) -> None:
    log_path = make_log_path(asset="native", run_id="test", log_dir=tmp_path)
    assert log_path.name == "flow_native_test.jsonl"

    append_event(log_path, {"type": "run_start", "run_id": "test"})
    append_event(log_path, {"type": "deposit", "run_id": "test", "amount": 10**16})

    events = read_events(log_path)
    assert len(events) == 2
    assert events[0]["type"] == "run_start"
    assert events[1]["amount"] == 10**16
    assert "ts_utc" in events[0]


def test_read_events_ignores_partial_last_line(tmp_path: Path) -> None:
    log_path = make_log_path(asset="fungible", run_id="partial", log_dir=tmp_path)

    append_event(log_path, {"type": "run_start", "run_id": "partial"})

    # Simulate a crash during append (partial JSON line at EOF).
    with log_path.open("a", encoding="utf-8") as f:
        f.write('{"type": "deposit"')

    events = read_events(log_path)
    assert len(events) == 1
    assert events[0]["type"] == "run_start"


def test_json_friendly_handles_flow_types() -> None:
    @dataclass
    class Sample:
        asset: AssetKind
        payload: bytes
        amounts: tuple

    out = json_friendly(Sample(asset=AssetKind.FUNGIBLE, payload=b"\x01\xff", amounts=(1, 2**200)))

    assert out == {"asset": "fungible", "payload": "0x01ff", "amounts": [1, 2**200]}


def test_latest_event_matches_type_and_fields() -> None:
    events = [
        {"type": "deposit", "tx_hash": "0x1", "asset": "native"},
        {"type": "step_done", "step": "deposit"},
        {"type": "deposit", "tx_hash": "0x2", "asset": "fungible"},
    ]

    assert latest_event(events, "deposit")["tx_hash"] == "0x2"
    assert latest_event(events, "deposit", asset="native")["tx_hash"] == "0x1"
    assert latest_event(events, "run_end") is None


def test_run_log_writer_and_listing(tmp_path: Path) -> None:
    log = RunLog.create(asset="native", run_id="20260101T000000Z", log_dir=tmp_path)
    log.log("run_start", backend="SIM")

    infos = list_logs(tmp_path)
    assert len(infos) == 1
    assert infos[0].asset == "native"
    assert infos[0].run_id == "20260101T000000Z"
    assert read_events(infos[0].path)[0]["run_id"] == "20260101T000000Z"


def test_disabled_run_log_writes_nothing(tmp_path: Path) -> None:
    log = RunLog.create(asset="native", log_dir=tmp_path, enabled=False)
    log.log("run_start")

    assert log.path is None
    assert list(tmp_path.iterdir()) == []
