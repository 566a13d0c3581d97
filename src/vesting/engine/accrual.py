"""Accrual engine — pure vested-amount computation.

No side effects, no clock reads. Every function takes the instant to
evaluate at. All arithmetic is integer with truncating division, so
vested amounts never exceed the allocation and never drift.

Slice accrual:
    cliff_end      = start + cliff
    periods        = (now - cliff_end) // period_duration   (+1 if unlock_at_cliff)
    vested_bps     = min(periods * slice_bps, 10000)
    vested_amount  = allocation * vested_bps // 10000

A revoked ledger evaluates at min(now, revoked_at), so accrual is frozen
at the revocation instant.
"""

from __future__ import annotations

from typing import Optional

from vesting.models.schedule import BPS_DENOMINATOR, Schedule


def allocation(schedule: Schedule, share_bps: int) -> int:
    """A beneficiary's total entitlement."""
    return schedule.total_amount * share_bps // BPS_DENOMINATOR


def effective_time(now: int, revoked_at: Optional[int] = None) -> int:
    """The instant accrual is evaluated at, frozen after revocation."""
    if revoked_at is not None and now > revoked_at:
        return revoked_at
    return now


def periods_elapsed(schedule: Schedule, now: int) -> int:
    """Number of slices unlocked at `now` (uncapped). Zero before the cliff."""
    if now < schedule.cliff_end:
        return 0
    periods = (now - schedule.cliff_end) // schedule.period_duration
    if schedule.unlock_at_cliff:
        periods += 1
    return periods


def vested_bps(
    schedule: Schedule,
    now: int,
    revoked_at: Optional[int] = None,
) -> int:
    """Vested fraction of every allocation, in basis points."""
    at = effective_time(now, revoked_at)
    return min(periods_elapsed(schedule, at) * schedule.slice_bps, BPS_DENOMINATOR)


def vested_amount(
    schedule: Schedule,
    share_bps: int,
    now: int,
    revoked_at: Optional[int] = None,
) -> int:
    """Units of a beneficiary's allocation unlocked at `now`."""
    return allocation(schedule, share_bps) * vested_bps(schedule, now, revoked_at) // BPS_DENOMINATOR


def releasable_amount(
    schedule: Schedule,
    share_bps: int,
    released: int,
    now: int,
    revoked_at: Optional[int] = None,
) -> int:
    """Vested but not yet paid out. Never negative."""
    return max(0, vested_amount(schedule, share_bps, now, revoked_at) - released)


def vesting_end(schedule: Schedule) -> int:
    """First instant at which every allocation is fully vested."""
    slices_needed = -(-BPS_DENOMINATOR // schedule.slice_bps)
    if schedule.unlock_at_cliff:
        slices_needed -= 1
    return schedule.cliff_end + slices_needed * schedule.period_duration


def next_unlock(
    schedule: Schedule,
    now: int,
    revoked_at: Optional[int] = None,
) -> Optional[int]:
    """Next instant at which the vested fraction increases.

    None when already fully vested or frozen by revocation.
    """
    if revoked_at is not None:
        return None
    if now >= vesting_end(schedule):
        return None
    if now < schedule.cliff_end:
        if schedule.unlock_at_cliff:
            return schedule.cliff_end
        return schedule.cliff_end + schedule.period_duration
    offset = 1 if schedule.unlock_at_cliff else 0
    return schedule.cliff_end + (periods_elapsed(schedule, now) + 1 - offset) * schedule.period_duration
