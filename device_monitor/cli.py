#!/usr/bin/env python3
"""
Device Monitor CLI

Command-line trigger for the evaluation pass, for hosts that schedule it
from a system crontab instead of hitting the HTTP endpoint.

Usage:
    # Run one pass now
    device-monitor check

    # Run one pass at a fixed time against a local SQLite store
    device-monitor check --now 2026-01-01T12:00:00Z --backend sqlite --db ./units.db

    # Show the effective alerting policy
    device-monitor policy

Output is JSON for easy parsing.
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone

from .common.config import parse_timestamp
from .common.settings import MonitorSettings, get_settings
from .services.evaluation import create_evaluation_pass


def build_settings(args: argparse.Namespace) -> MonitorSettings:
    """Apply CLI overrides on top of the environment settings"""
    settings = get_settings()
    overrides = {}
    if getattr(args, "backend", None):
        overrides["store_backend"] = args.backend
    if getattr(args, "db", None):
        overrides["sqlite_path"] = args.db
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def run_check(args: argparse.Namespace) -> dict:
    settings = build_settings(args)
    now = parse_timestamp(args.now) if args.now else datetime.now(timezone.utc)
    evaluation = create_evaluation_pass(settings)
    summary = asyncio.run(evaluation.run(now))
    return {"success": True, "now": now.isoformat(), "results": summary.to_dict()}


def show_policy(args: argparse.Namespace) -> dict:
    policy = get_settings().to_policy()
    return {
        "offline_threshold_seconds": policy.offline_threshold.total_seconds(),
        "offline_cooldown_seconds": policy.offline_cooldown.total_seconds(),
        "battery_low_threshold": policy.battery_low_threshold,
        "battery_recovery_threshold": policy.battery_recovery_threshold,
        "battery_cooldown_seconds": policy.battery_cooldown.total_seconds(),
        "recovery_window_seconds": policy.recovery_window.total_seconds(),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="device-monitor",
        description="Device status alerting (offline / battery low / back online)",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Check command
    check_parser = subparsers.add_parser("check", help="Run one evaluation pass")
    check_parser.add_argument("--now", help="Evaluation time (ISO-8601, default: current UTC time)")
    check_parser.add_argument("--backend", choices=["supabase", "sqlite"], help="Store backend override")
    check_parser.add_argument("--db", help="SQLite database path (with --backend sqlite)")

    # Policy command
    subparsers.add_parser("policy", help="Print the effective alerting policy")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "check":
            result = run_check(args)
        else:
            result = show_policy(args)
    except Exception as e:
        print(json.dumps({"success": False, "error": str(e)}))
        return 1

    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
