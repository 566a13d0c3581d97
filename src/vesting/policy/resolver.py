"""Policy and runtime configuration.

Two layers:
- VestingPolicy: the accounting bounds (slice and share limits, cliff
  unlock policy). Loaded from config/vesting_policy.json, or
  built-in defaults.
- LedgerSettings: where the CLI keeps its data and config, and the log
  level. Read from the environment after loading a .env file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from vesting.models.schedule import (
    BPS_DENOMINATOR,
    MAX_SHARE_BPS,
    MAX_SLICE_BPS,
    MIN_SLICE_BPS,
)


ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = ROOT / "config"
DEFAULT_DATA_DIR = ROOT / "data"
POLICY_FILENAME = "vesting_policy.json"


@dataclass(frozen=True)
class VestingPolicy:
    """Accounting bounds applied by the schedule validator."""

    min_slice_bps: int = MIN_SLICE_BPS
    max_slice_bps: int = MAX_SLICE_BPS
    max_share_bps: int = MAX_SHARE_BPS
    unlock_at_cliff: bool = False

    def __post_init__(self) -> None:
        if not (0 < self.min_slice_bps <= self.max_slice_bps <= BPS_DENOMINATOR):
            raise ValueError(
                "Slice bounds must satisfy 0 < min_slice_bps <= max_slice_bps "
                f"<= {BPS_DENOMINATOR}, got {self.min_slice_bps}/"
                f"{self.max_slice_bps}"
            )
        if not (0 < self.max_share_bps <= BPS_DENOMINATOR):
            raise ValueError(f"max_share_bps must be in (0, {BPS_DENOMINATOR}]")

    @classmethod
    def default(cls) -> VestingPolicy:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VestingPolicy:
        bounds = data.get("bounds", {})
        accrual = data.get("accrual", {})
        return cls(
            min_slice_bps=int(bounds.get("MIN_SLICE_BPS", MIN_SLICE_BPS)),
            max_slice_bps=int(bounds.get("MAX_SLICE_BPS", MAX_SLICE_BPS)),
            max_share_bps=int(bounds.get("MAX_SHARE_BPS", MAX_SHARE_BPS)),
            unlock_at_cliff=bool(accrual.get("UNLOCK_AT_CLIFF", False)),
        )

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> VestingPolicy:
        """Load from <config_dir>/vesting_policy.json.

        A missing file yields the defaults; a malformed one raises.
        """
        path = Path(config_dir) / POLICY_FILENAME
        if not path.exists():
            return cls.default()
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the CLI and service wiring."""

    data_dir: Path = DEFAULT_DATA_DIR
    config_dir: Path = DEFAULT_CONFIG_DIR
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> LedgerSettings:
        """Read VESTING_* variables, loading a .env file first if present."""
        load_dotenv(env_file or ROOT / ".env")
        return cls(
            data_dir=Path(os.getenv("VESTING_DATA_DIR", str(DEFAULT_DATA_DIR))),
            config_dir=Path(os.getenv("VESTING_CONFIG_DIR", str(DEFAULT_CONFIG_DIR))),
            log_level=os.getenv("VESTING_LOG_LEVEL", "WARNING").upper(),
        )
