"""
Operator CLI for the rollover jobs.

Usage:
    python -m supper_batch init-db [--config PATH]
    python -m supper_batch run daily_business_stats [--at 2024-05-02T00:00:00Z]
    python -m supper_batch serve [--config PATH]
    python -m supper_batch history [--plan NAME] [--limit N]

``run`` exits 0 when the rollover reached DONE and 1 when it FAILED, so an
external scheduler can apply its own retry policy.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from datetime import datetime, timezone

from supper_kernel.logging_config import configure_logging, get_logger

logger = get_logger("batch.cli")


def _parse_instant(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m supper_batch",
        description="Roll business counters into period archives.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to rollover YAML (default: SUPPER_CONFIG or packaged defaults)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument(
        "--log-format",
        default="json",
        choices=["json", "console"],
        help="JSON lines (default) or human-readable console lines",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the document and run-history tables")

    run = commands.add_parser("run", help="Run one rollover plan once")
    run.add_argument("plan", help="Configured plan name")
    run.add_argument(
        "--at",
        type=_parse_instant,
        default=None,
        help="Invocation instant (ISO-8601, default now); the period before it is closed",
    )

    commands.add_parser("serve", help="Run the cron scheduler until interrupted")

    history = commands.add_parser("history", help="Show recent rollover attempts")
    history.add_argument("--plan", default=None)
    history.add_argument("--limit", type=int, default=20)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(
        level=getattr(logging, args.log_level),
        console=args.log_format == "console",
    )

    from supper_batch.orchestrator import RolloverOrchestrator
    from supper_config import get_config

    try:
        config = get_config(args.config)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        print(f"  ERROR: invalid configuration: {exc}", file=sys.stderr)
        return 2

    orchestrator = RolloverOrchestrator.from_config(config)

    if args.command == "init-db":
        orchestrator.init_db()
        print("  Tables created.")
        return 0

    if args.command == "run":
        try:
            driver = orchestrator.create_driver(args.plan)
        except KeyError as exc:
            print(f"  ERROR: {exc.args[0]}", file=sys.stderr)
            return 2
        result = driver.run(args.at)
        orchestrator.history.record(result)
        summary = result.summary
        print(
            f"  {result.plan} {result.period_key}: {result.status.value} -- "
            f"{summary.entities_processed} entities, "
            f"{summary.archives_written} archives, "
            f"{summary.batches_committed} commits"
        )
        if not result.ok:
            print(f"  ERROR ({result.error_kind.value}): {result.error_message}", file=sys.stderr)
            return 1
        return 0

    if args.command == "history":
        for run in orchestrator.history.recent(plan=args.plan, limit=args.limit):
            print(
                f"  {run.started_at}  {run.plan:<26} {run.period_key or '-':<10} "
                f"{run.status.value:<7} entities={run.summary.entities_processed} "
                f"archives={run.summary.archives_written}"
            )
        return 0

    # serve
    scheduler = orchestrator.create_scheduler()
    stopped = threading.Event()

    def _handle_signal(signum, frame):
        logger.info("scheduler_signal_received", extra={"signal": signum})
        stopped.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    for name, fire_at in scheduler.next_fire_times().items():
        print(f"  {name}: next run {fire_at.isoformat()}")
    scheduler.start()
    stopped.wait()
    scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
