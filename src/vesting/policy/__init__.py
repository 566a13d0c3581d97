"""Configuration layer — accounting policy and runtime settings."""

from vesting.policy.resolver import LedgerSettings, VestingPolicy

__all__ = ["LedgerSettings", "VestingPolicy"]
