"""Command-line entrypoint.

Subcommands:
- ``run``   deposit, track, provision the child and (optionally) withdraw.
- ``track`` resume tracking an L1 deposit by transaction hash. Without a hash,
  the latest ``deposit`` event of the most recent run log is used.

Environment variables provide the defaults (see ``bridgeflow.config``); flags
override them. Exit status is 0 on success and 1 on any flow error.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from bridgeflow.config import get_flow_config
from bridgeflow.errors import BridgeFlowError, ConfigurationError, MessageTimeoutError
from bridgeflow.flow import make_backend, run_flow
from bridgeflow.models import AssetKind
from bridgeflow.run_log import latest_event, list_logs, read_events
from bridgeflow.tracking import MessageTracker


def _report_error(exc: BridgeFlowError) -> None:
    where = f" in step {exc.step}" if exc.step else ""
    print(f"[bridgeflow] {type(exc).__name__}{where}: {exc}", file=sys.stderr)
    if isinstance(exc, MessageTimeoutError):
        msg = exc.cross_layer_message
        print(f"[bridgeflow] sequence number: {msg.sequence_number}", file=sys.stderr)
        print(f"[bridgeflow] l2TxHash: {msg.l2_tx_hash}", file=sys.stderr)
        print("[bridgeflow] The deposit may still be in flight; resume with `bridgeflow track`", file=sys.stderr)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--backend",
        type=str,
        default=None,
        help="WEB3 or SIM. If omitted, uses BRIDGEFLOW_BACKEND (default: WEB3).",
    )
    asset = p.add_mutually_exclusive_group()
    asset.add_argument(
        "--eth",
        dest="eth_flag",
        action="store_const",
        const=True,
        default=None,
        help="Move the native coin (same as ETH_FLAG=1).",
    )
    asset.add_argument(
        "--token",
        dest="eth_flag",
        action="store_const",
        const=False,
        help="Move the fungible token even if ETH_FLAG is set.",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the L2 transaction (default: L2_TX_TIMEOUT_SECONDS or 600).",
    )
    p.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Run log directory (default: BRIDGEFLOW_LOG_DIR or repo_root/run_state/flows).",
    )


def _cmd_run(args: argparse.Namespace) -> int:
    cfg = get_flow_config(
        backend=args.backend,
        eth_flag=args.eth_flag,
        deposit_amount=args.deposit_amount,
        withdraw_amount=args.withdraw_amount,
        l2_tx_timeout_seconds=args.timeout,
        log_dir=args.log_dir,
    )
    outcome = run_flow(cfg, run_id=args.run_id, log_to_disk=not bool(args.no_disk_log))
    if outcome.log_path is not None:
        print(f"[bridgeflow] run log: {outcome.log_path}")
    if outcome.error is not None:
        _report_error(outcome.error)
        return 1
    print(f"[bridgeflow] completed: {', '.join(outcome.state.completed)}")
    if outcome.state.skipped:
        print(f"[bridgeflow] skipped: {', '.join(outcome.state.skipped)}")
    return 0


def _latest_deposit(log_dir: Optional[str]) -> dict:
    logs = list_logs(Path(log_dir) if log_dir else None)
    if not logs:
        raise ConfigurationError("No run logs found; pass the L1 deposit transaction hash explicitly")
    event = latest_event(read_events(logs[0].path), "deposit")
    if event is None or not event.get("tx_hash"):
        raise ConfigurationError(f"No deposit recorded in {logs[0].path}")
    print(f"[bridgeflow] Resuming deposit {event['tx_hash']} from {logs[0].path}")
    return event


def _cmd_track(args: argparse.Namespace) -> int:
    cfg = get_flow_config(
        backend=args.backend,
        eth_flag=args.eth_flag,
        l2_tx_timeout_seconds=args.timeout,
        log_dir=args.log_dir,
    )
    tx_hash = args.tx_hash
    asset = cfg.asset
    if not tx_hash:
        event = _latest_deposit(cfg.log_dir)
        tx_hash = str(event["tx_hash"])
        if args.eth_flag is None and event.get("asset"):
            asset = AssetKind(event["asset"])

    ctx, bridge = make_backend(cfg)
    tracker = MessageTracker(ctx.l1_ledger, ctx.l2_ledger, bridge, poll_interval=cfg.timing.poll_interval_seconds)
    message = tracker.track_hash(tx_hash, asset, cfg.timing.l2_tx_timeout_seconds)
    print(f"[bridgeflow] {message.status.value}: {message.l2_tx_hash}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bridgeflow",
        description="L1 -> L2 deposit, child provisioning and L2 -> L1 withdrawal runner.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Run the full deposit/withdrawal flow.")
    _add_common(run_p)
    run_p.add_argument(
        "--deposit-amount",
        type=str,
        default=None,
        help="Ether string for --eth (e.g. 0.01), token units otherwise. Overrides ETH_DEPOSIT / DEPOSIT_AMOUNT.",
    )
    run_p.add_argument(
        "--withdraw-amount",
        type=str,
        default=None,
        help="Withdrawal amount; the withdrawal is skipped when neither this nor ETH_WITHDRAWAL / WITHDRAW_AMOUNT is set.",
    )
    run_p.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run id for the JSONL log (default: UTC timestamp).",
    )
    run_p.add_argument(
        "--no-disk-log",
        action="store_true",
        help="Disable writing the JSONL run log.",
    )
    run_p.set_defaults(func=_cmd_run)

    track_p = sub.add_parser("track", help="Resume tracking an L1 deposit until its L2 transaction appears.")
    track_p.add_argument(
        "tx_hash",
        nargs="?",
        default=None,
        help="L1 deposit transaction hash (default: latest deposit in the most recent run log).",
    )
    _add_common(track_p)
    track_p.set_defaults(func=_cmd_track)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except BridgeFlowError as exc:
        _report_error(exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
