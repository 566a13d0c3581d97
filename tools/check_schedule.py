#!/usr/bin/env python3
"""Vesting policy and schedule checks against the config artifacts.

Usage:
    python3 tools/check_schedule.py                 # policy + config/*schedule*.json
    python3 tools/check_schedule.py path/to/schedule.json ...
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from vesting.engine.validator import ScheduleParams, collect_errors
from vesting.models.schedule import BPS_DENOMINATOR
from vesting.policy.resolver import VestingPolicy

POLICY_PATH = ROOT / "config" / "vesting_policy.json"


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_policy(errors: list[str]) -> VestingPolicy:
    """Validate the raw policy file before trusting it."""
    bounds = load_json(POLICY_PATH).get("bounds", {})
    min_slice = bounds.get("MIN_SLICE_BPS", 0)
    max_slice = bounds.get("MAX_SLICE_BPS", 0)
    max_share = bounds.get("MAX_SHARE_BPS", 0)
    if min_slice <= 0:
        errors.append(f"MIN_SLICE_BPS must be > 0, got {min_slice}")
    if max_slice > BPS_DENOMINATOR:
        errors.append(f"MAX_SLICE_BPS must be <= {BPS_DENOMINATOR}, got {max_slice}")
    if min_slice > max_slice:
        errors.append("MIN_SLICE_BPS cannot exceed MAX_SLICE_BPS")
    if not (0 < max_share <= BPS_DENOMINATOR):
        errors.append(f"MAX_SHARE_BPS must be in (0, {BPS_DENOMINATOR}], got {max_share}")
    if errors:
        return VestingPolicy.default()
    return VestingPolicy.from_config_dir(POLICY_PATH.parent)


def check(paths: list[Path] | None = None) -> int:
    errors: list[str] = []
    policy = check_policy(errors)

    if not paths:
        paths = sorted((ROOT / "config").glob("*schedule*.json"))
    for path in paths:
        try:
            params = ScheduleParams.from_json_file(path)
        except (OSError, ValueError) as exc:
            errors.append(f"{path.name}: cannot read schedule: {exc}")
            continue
        for error in collect_errors(params, policy):
            errors.append(f"{path.name}: {error}")

    if errors:
        print("Vesting checks FAILED:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print(f"Vesting checks passed ({len(paths)} schedule file(s)).")
    return 0


if __name__ == "__main__":
    raise SystemExit(check([Path(p) for p in sys.argv[1:]]))
