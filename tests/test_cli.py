"""Tests for the bridgeflow command-line entrypoint (exit codes and output)."""
from __future__ import annotations

from pathlib import Path

import bridgeflow.cli as cli
import bridgeflow.simulated as simulated
from bridgeflow.config import get_flow_config
from bridgeflow.flow import BridgeFlow
from bridgeflow.run_log import RunLog, read_events


def test_run_on_simulated_backend_succeeds(clean_env, tmp_path: Path, capsys) -> None:
    code = cli.main(
        ["run", "--backend", "SIM", "--eth", "--deposit-amount", "0.01", "--log-dir", str(tmp_path), "--run-id", "cli"]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "[bridgeflow] completed:" in out
    assert "skipped: withdraw" in out
    events = read_events(tmp_path / "flow_native_cli.jsonl")
    assert events[-1]["type"] == "run_end" and events[-1]["ok"] is True


def test_run_without_disk_log(clean_env, tmp_path: Path) -> None:
    code = cli.main(["run", "--backend", "SIM", "--no-disk-log", "--log-dir", str(tmp_path)])

    assert code == 0
    assert list(tmp_path.iterdir()) == []


def test_missing_configuration_exits_with_error(clean_env, capsys) -> None:
    code = cli.main(["run", "--backend", "WEB3"])

    assert code == 1
    err = capsys.readouterr().err
    assert "ConfigurationError" in err
    assert "L1RPC" in err


def test_tracking_timeout_prints_resume_details(clean_env, tmp_path: Path, monkeypatch, capsys) -> None:
    original = simulated.make_simulated_backend
    monkeypatch.setattr(simulated, "make_simulated_backend", lambda: original(include_after_lookups=-1))
    clean_env.setenv("L2_POLL_INTERVAL_SECONDS", "0.01")

    code = cli.main(
        ["run", "--backend", "SIM", "--eth", "--timeout", "0.05", "--log-dir", str(tmp_path), "--run-id", "slow"]
    )

    assert code == 1
    err = capsys.readouterr().err
    assert "MessageTimeoutError in step track" in err
    assert "sequence number: 1000" in err
    assert "l2TxHash: 0x" in err


def test_track_resumes_latest_logged_deposit(clean_env, tmp_path: Path, monkeypatch, capsys) -> None:
    sim = simulated.make_simulated_backend()
    cfg = get_flow_config(backend="SIM", eth_flag=True, deposit_amount="0.01")
    BridgeFlow(sim.ctx, sim.bridge, cfg, run_log=RunLog.create(asset="native", run_id="r1", log_dir=tmp_path)).run()
    monkeypatch.setattr(cli, "make_backend", lambda cfg: (sim.ctx, sim.bridge))

    code = cli.main(["track", "--backend", "SIM", "--log-dir", str(tmp_path)])

    assert code == 0
    out = capsys.readouterr().out
    assert "Resuming deposit" in out
    assert "INCLUDED" in out


def test_track_without_logs_or_hash_fails(clean_env, tmp_path: Path, capsys) -> None:
    code = cli.main(["track", "--backend", "SIM", "--log-dir", str(tmp_path)])

    assert code == 1
    assert "No run logs found" in capsys.readouterr().err


def test_track_unknown_hash_fails(clean_env, capsys) -> None:
    code = cli.main(["track", "0x" + "00" * 32, "--backend", "SIM", "--eth", "--timeout", "1"])

    assert code == 1
    assert "MalformedReceiptError" in capsys.readouterr().err


def test_malformed_environment_value_exits_with_error(clean_env, capsys) -> None:
    clean_env.setenv("CHILD_ID", "abc")

    code = cli.main(["run", "--backend", "SIM", "--eth", "--no-disk-log"])

    assert code == 1
    assert "ConfigurationError: Invalid CHILD_ID" in capsys.readouterr().err


def test_zero_timeout_in_environment_fails_before_any_transaction(clean_env, monkeypatch, capsys) -> None:
    sims = []

    def recording_backend():
        sims.append(original())
        return sims[-1]

    original = simulated.make_simulated_backend
    monkeypatch.setattr(simulated, "make_simulated_backend", recording_backend)
    clean_env.setenv("L2_TX_TIMEOUT_SECONDS", "0")

    code = cli.main(["run", "--backend", "SIM", "--eth", "--no-disk-log"])

    assert code == 1
    assert "L2_TX_TIMEOUT_SECONDS must be positive" in capsys.readouterr().err
    assert sims == []
