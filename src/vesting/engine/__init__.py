"""Vesting engine — schedule validation and accrual computation."""

from vesting.engine.validator import ScheduleParams, ScheduleValidator

__all__ = ["ScheduleParams", "ScheduleValidator"]
