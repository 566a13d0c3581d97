"""Tests for the policy resolver — proves config loading and bounds checks."""

import json
import subprocess
import sys
from pathlib import Path

import pytest

from vesting.policy.resolver import (
    DEFAULT_DATA_DIR,
    LedgerSettings,
    VestingPolicy,
)


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"


@pytest.fixture
def policy() -> VestingPolicy:
    return VestingPolicy.from_config_dir(CONFIG_DIR)


class TestVestingPolicy:
    def test_shipped_config(self, policy: VestingPolicy) -> None:
        assert policy.min_slice_bps == 100
        assert policy.max_slice_bps == 10000
        assert policy.max_share_bps == 10000
        assert policy.unlock_at_cliff is False

    def test_shipped_config_matches_defaults(self, policy: VestingPolicy) -> None:
        assert policy == VestingPolicy.default()

    def test_missing_file_yields_defaults(self, tmp_path) -> None:
        assert VestingPolicy.from_config_dir(tmp_path) == VestingPolicy.default()

    def test_partial_file(self, tmp_path) -> None:
        (tmp_path / "vesting_policy.json").write_text(
            json.dumps({"accrual": {"UNLOCK_AT_CLIFF": True}}), encoding="utf-8",
        )
        loaded = VestingPolicy.from_config_dir(tmp_path)
        assert loaded.unlock_at_cliff is True
        assert loaded.min_slice_bps == 100

    def test_malformed_file_raises(self, tmp_path) -> None:
        (tmp_path / "vesting_policy.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            VestingPolicy.from_config_dir(tmp_path)

    def test_inverted_slice_bounds(self) -> None:
        with pytest.raises(ValueError, match="Slice bounds"):
            VestingPolicy(min_slice_bps=500, max_slice_bps=400)

    def test_slice_bound_over_denominator(self) -> None:
        with pytest.raises(ValueError):
            VestingPolicy(max_slice_bps=10001)

    def test_zero_share_bound(self) -> None:
        with pytest.raises(ValueError, match="max_share_bps"):
            VestingPolicy(max_share_bps=0)


class TestLedgerSettings:
    def test_defaults(self, monkeypatch, tmp_path) -> None:
        for name in ("VESTING_DATA_DIR", "VESTING_CONFIG_DIR", "VESTING_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        settings = LedgerSettings.from_env(tmp_path / "absent.env")
        assert settings.data_dir == DEFAULT_DATA_DIR
        assert settings.log_level == "WARNING"

    def test_environment_overrides(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("VESTING_DATA_DIR", str(tmp_path / "data"))
        monkeypatch.setenv("VESTING_LOG_LEVEL", "info")
        settings = LedgerSettings.from_env(tmp_path / "absent.env")
        assert settings.data_dir == tmp_path / "data"
        assert settings.log_level == "INFO"

    def test_env_file(self, monkeypatch, tmp_path) -> None:
        # load_dotenv writes into os.environ; monkeypatch must own the variable
        monkeypatch.setenv("VESTING_CONFIG_DIR", "placeholder")
        monkeypatch.delenv("VESTING_CONFIG_DIR")
        env_file = tmp_path / ".env"
        env_file.write_text(f"VESTING_CONFIG_DIR={tmp_path / 'cfg'}\n", encoding="utf-8")
        settings = LedgerSettings.from_env(env_file)
        assert settings.config_dir == tmp_path / "cfg"


class TestScheduleChecker:
    def test_checker_passes_on_shipped_config(self) -> None:
        result = subprocess.run(
            [sys.executable, "tools/check_schedule.py"],
            capture_output=True, text=True,
            cwd=str(ROOT),
        )
        assert result.returncode == 0, (
            f"Schedule checker failed:\n{result.stdout}\n{result.stderr}"
        )

    def test_checker_flags_bad_schedule(self, tmp_path) -> None:
        bad = json.loads((CONFIG_DIR / "example_schedule.json").read_text(encoding="utf-8"))
        bad["slice_bps"] = 0
        path = tmp_path / "bad_schedule.json"
        path.write_text(json.dumps(bad), encoding="utf-8")

        result = subprocess.run(
            [sys.executable, "tools/check_schedule.py", str(path)],
            capture_output=True, text=True,
            cwd=str(ROOT),
        )
        assert result.returncode == 1
        assert "slice_out_of_range" in result.stdout

    def test_checker_reports_malformed_file(self, tmp_path) -> None:
        path = tmp_path / "broken_schedule.json"
        path.write_text("{not json", encoding="utf-8")

        result = subprocess.run(
            [sys.executable, "tools/check_schedule.py", str(path)],
            capture_output=True, text=True,
            cwd=str(ROOT),
        )
        assert result.returncode == 1
        assert "broken_schedule.json: cannot read schedule" in result.stdout
        assert "Traceback" not in result.stderr
