"""Vesting CLI — command-line interface for a persisted vesting ledger.

Usage:
    python -m vesting.cli create --params config/example_schedule.json --admin 0xAdmin --fund
    python -m vesting.cli status --now 1749428000
    python -m vesting.cli vested --address 0xBeneficiary
    python -m vesting.cli release --address 0xBeneficiary
    python -m vesting.cli release-all
    python -m vesting.cli revoke --caller 0xAdmin
    python -m vesting.cli withdraw --caller 0xAdmin
    python -m vesting.cli events
    python -m vesting.cli check-schedule --params config/example_schedule.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from vesting.engine.validator import ScheduleParams, collect_errors
from vesting.persistence.event_log import EventLog
from vesting.persistence.state_store import StateStore
from vesting.policy.resolver import LedgerSettings, VestingPolicy
from vesting.service import ServiceResult, VestingService


def _make_service(config_dir: Path, data_dir: Path) -> VestingService:
    """Create a VestingService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    return VestingService(
        VestingPolicy.from_config_dir(config_dir),
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
        state_store=StateStore(data_dir / "state.json"),
    )


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_create(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    try:
        params = ScheduleParams.from_json_file(args.params)
    except (OSError, ValueError) as exc:
        print(f"Failed: cannot read {args.params}: {exc}", file=sys.stderr)
        return 1
    return _report(service.create_schedule(
        params,
        administrator=args.admin,
        holding_account=args.holding_account,
        fund=args.fund,
    ))


def cmd_status(args: argparse.Namespace) -> int:
    return _report(_make_service(args.config, args.data).status(args.now))


def cmd_vested(args: argparse.Namespace) -> int:
    return _report(_make_service(args.config, args.data).vested(args.address, args.now))


def cmd_release(args: argparse.Namespace) -> int:
    return _report(_make_service(args.config, args.data).release(args.address, args.now))


def cmd_release_all(args: argparse.Namespace) -> int:
    return _report(_make_service(args.config, args.data).release_all(args.now))


def cmd_revoke(args: argparse.Namespace) -> int:
    return _report(_make_service(args.config, args.data).revoke(args.caller, args.now))


def cmd_withdraw(args: argparse.Namespace) -> int:
    return _report(_make_service(args.config, args.data).withdraw(args.caller, args.now))


def cmd_events(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    for event in service.event_log.events():
        print(json.dumps(event.to_dict(), sort_keys=True))
    return 0


def cmd_check_schedule(args: argparse.Namespace) -> int:
    """Validate a schedule parameter file without creating anything."""
    try:
        params = ScheduleParams.from_json_file(args.params)
    except (OSError, ValueError) as exc:
        print(f"Failed: cannot read {args.params}: {exc}", file=sys.stderr)
        return 1
    errors = collect_errors(params, VestingPolicy.from_config_dir(args.config))
    if errors:
        for error in errors:
            print(f"INVALID: {error}", file=sys.stderr)
        return 1
    print(f"OK: {args.params}")
    return 0


def build_parser(settings: Optional[LedgerSettings] = None) -> argparse.ArgumentParser:
    settings = settings or LedgerSettings()
    parser = argparse.ArgumentParser(
        prog="vesting",
        description="Vesting ledger — cliff and periodic-slice token vesting",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=settings.config_dir,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=settings.data_dir,
        help="Path to data directory holding state and events (default: data/)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="command")

    # create
    p_create = sub.add_parser("create", help="Create the vesting schedule")
    p_create.add_argument("--params", type=Path, required=True, help="Schedule JSON file")
    p_create.add_argument("--admin", required=True, help="Administrator account")
    p_create.add_argument("--holding-account", help="Ledger holding account (default: generated)")
    p_create.add_argument(
        "--fund", action="store_true",
        help="Credit the holding account with total_amount in the local asset book",
    )

    # status / vested
    p_status = sub.add_parser("status", help="Show ledger status")
    p_status.add_argument("--now", type=int, help="Evaluate at this unix time")

    p_vested = sub.add_parser("vested", help="Show one beneficiary's vesting")
    p_vested.add_argument("--address", required=True)
    p_vested.add_argument("--now", type=int, help="Evaluate at this unix time")

    # release / release-all
    p_release = sub.add_parser("release", help="Release vested units to a beneficiary")
    p_release.add_argument("--address", required=True)
    p_release.add_argument("--now", type=int, help="Evaluate at this unix time")

    p_all = sub.add_parser("release-all", help="Release for every beneficiary")
    p_all.add_argument("--now", type=int, help="Evaluate at this unix time")

    # revoke / withdraw
    p_revoke = sub.add_parser("revoke", help="Revoke the schedule (administrator)")
    p_revoke.add_argument("--caller", required=True)
    p_revoke.add_argument("--now", type=int, help="Evaluate at this unix time")

    p_withdraw = sub.add_parser("withdraw", help="Withdraw the held balance (administrator)")
    p_withdraw.add_argument("--caller", required=True)
    p_withdraw.add_argument("--now", type=int, help="Evaluate at this unix time")

    # events / check-schedule
    sub.add_parser("events", help="Print the event log as JSON lines")

    p_check = sub.add_parser("check-schedule", help="Validate a schedule JSON file")
    p_check.add_argument("--params", type=Path, required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser(LedgerSettings.from_env())
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "create": cmd_create,
        "status": cmd_status,
        "vested": cmd_vested,
        "release": cmd_release,
        "release-all": cmd_release_all,
        "revoke": cmd_revoke,
        "withdraw": cmd_withdraw,
        "events": cmd_events,
        "check-schedule": cmd_check_schedule,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
