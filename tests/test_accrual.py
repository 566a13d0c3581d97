"""Tests for the accrual engine — proves vesting math invariants hold."""

import pytest

from vesting.engine import accrual
from vesting.models.schedule import Schedule


START = 1739060000
PERIOD = 60 * 60 * 24 * 30
CLIFF = 3 * PERIOD


def _schedule(
    total_amount: int = 20_000_000,
    slice_bps: int = 1000,
    cliff: int = CLIFF,
    unlock_at_cliff: bool = False,
) -> Schedule:
    return Schedule(
        revocable=True,
        asset="0xToken",
        total_amount=total_amount,
        start=START,
        cliff=cliff,
        period_duration=PERIOD,
        slice_bps=slice_bps,
        unlock_at_cliff=unlock_at_cliff,
    )


class TestAllocation:
    def test_half_share(self) -> None:
        assert accrual.allocation(_schedule(), 5000) == 10_000_000

    def test_truncates(self) -> None:
        assert accrual.allocation(_schedule(total_amount=1001), 3333) == 333


class TestBeforeCliff:
    @pytest.mark.parametrize("offset", [-PERIOD, 0, 1, CLIFF - 1])
    def test_nothing_vested(self, offset: int) -> None:
        assert accrual.vested_amount(_schedule(), 5000, START + offset) == 0

    def test_cliff_instant_releases_nothing_by_default(self) -> None:
        assert accrual.vested_amount(_schedule(), 5000, START + CLIFF) == 0

    def test_cliff_instant_with_unlock_at_cliff(self) -> None:
        schedule = _schedule(unlock_at_cliff=True)
        assert accrual.vested_amount(schedule, 5000, START + CLIFF) == 1_000_000
        assert accrual.vested_amount(schedule, 5000, START + CLIFF - 1) == 0


class TestSlices:
    def test_one_period_after_cliff(self) -> None:
        assert accrual.vested_amount(_schedule(), 5000, START + 4 * PERIOD) == 1_000_000
        assert accrual.vested_amount(_schedule(), 2500, START + 4 * PERIOD) == 500_000

    def test_partial_period_rounds_down(self) -> None:
        now = START + 5 * PERIOD - 1
        assert accrual.vested_amount(_schedule(), 5000, now) == 1_000_000

    def test_two_periods(self) -> None:
        assert accrual.vested_amount(_schedule(), 5000, START + 5 * PERIOD) == 2_000_000

    def test_saturates_at_allocation(self) -> None:
        schedule = _schedule()
        end = START + CLIFF + 10 * PERIOD
        assert accrual.vested_amount(schedule, 5000, end) == 10_000_000
        assert accrual.vested_amount(schedule, 5000, end + 50 * PERIOD) == 10_000_000

    def test_uneven_slice_caps_at_full(self) -> None:
        schedule = _schedule(slice_bps=3000)
        assert accrual.vested_bps(schedule, START + CLIFF + 3 * PERIOD) == 9000
        assert accrual.vested_bps(schedule, START + CLIFF + 4 * PERIOD) == 10000

    def test_never_exceeds_allocation(self) -> None:
        schedule = _schedule(total_amount=1001, slice_bps=700)
        cap = accrual.allocation(schedule, 3333)
        for k in range(0, 40):
            assert accrual.vested_amount(schedule, 3333, START + CLIFF + k * PERIOD) <= cap

    def test_monotonic_in_time(self) -> None:
        schedule = _schedule(total_amount=987_654, slice_bps=333)
        previous = 0
        for k in range(0, 80):
            now = START + k * (PERIOD // 2)
            current = accrual.vested_amount(schedule, 2500, now)
            assert current >= previous
            previous = current


class TestRevocationFreeze:
    def test_frozen_after_revocation(self) -> None:
        schedule = _schedule()
        revoked_at = START + 4 * PERIOD
        frozen = accrual.vested_amount(schedule, 5000, revoked_at, revoked_at)
        later = accrual.vested_amount(schedule, 5000, START + 20 * PERIOD, revoked_at)
        assert frozen == later == 1_000_000

    def test_effective_time(self) -> None:
        assert accrual.effective_time(100, None) == 100
        assert accrual.effective_time(100, 50) == 50
        assert accrual.effective_time(40, 50) == 40


class TestReleasable:
    def test_subtracts_released(self) -> None:
        now = START + 5 * PERIOD
        assert accrual.releasable_amount(_schedule(), 5000, 1_000_000, now) == 1_000_000

    def test_never_negative(self) -> None:
        assert accrual.releasable_amount(_schedule(), 5000, 5, START) == 0


class TestTimeline:
    def test_vesting_end(self) -> None:
        assert accrual.vesting_end(_schedule()) == START + CLIFF + 10 * PERIOD
        assert accrual.vesting_end(_schedule(slice_bps=3000)) == START + CLIFF + 4 * PERIOD
        assert accrual.vesting_end(_schedule(unlock_at_cliff=True)) == START + CLIFF + 9 * PERIOD

    def test_next_unlock_before_cliff(self) -> None:
        assert accrual.next_unlock(_schedule(), START) == START + CLIFF + PERIOD
        assert accrual.next_unlock(_schedule(unlock_at_cliff=True), START) == START + CLIFF

    def test_next_unlock_mid_period(self) -> None:
        now = START + CLIFF + PERIOD + 5
        assert accrual.next_unlock(_schedule(), now) == START + CLIFF + 2 * PERIOD
        assert accrual.next_unlock(_schedule(unlock_at_cliff=True), now) == START + CLIFF + 2 * PERIOD

    def test_next_unlock_after_end(self) -> None:
        assert accrual.next_unlock(_schedule(), START + CLIFF + 10 * PERIOD) is None

    def test_next_unlock_when_revoked(self) -> None:
        assert accrual.next_unlock(_schedule(), START, revoked_at=START) is None
