"""Schedule validator — runs once, at ledger construction.

Every rule is a hard precondition. Rules are checked in a fixed order
and the first failure is raised as InvalidSchedule, so error reporting
is deterministic. Nothing is built until every rule passes.

Rule order:
    1. total amount > 0
    2. period duration > 0
    3. min_slice_bps <= slice_bps <= max_slice_bps
    4. len(addresses) == len(shares)
    5. asset is not the zero address
    6. no beneficiary address is the zero address
    7. 0 < share <= max_share_bps for every share
    8. sum(shares) == 10000
    9. beneficiary addresses are unique
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from vesting.errors import InvalidSchedule, ScheduleRule
from vesting.models.schedule import (
    BPS_DENOMINATOR,
    U64_MAX,
    Beneficiary,
    Schedule,
    address_key,
    is_zero_address,
)
from vesting.policy.resolver import VestingPolicy


TimeLike = Union[int, datetime]
DurationLike = Union[int, timedelta]


def as_timestamp(value: TimeLike) -> int:
    """Normalise an instant to integer unix seconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValueError("Naive datetime not allowed; attach a timezone")
        return int(value.timestamp())
    return value


def as_seconds(value: DurationLike) -> int:
    """Normalise a duration to integer seconds."""
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return value


@dataclass(frozen=True)
class ScheduleParams:
    """Unvalidated construction parameters, as supplied by a caller or file."""

    revocable: bool
    asset: Optional[str]
    total_amount: int
    start: TimeLike
    cliff: DurationLike
    period_duration: DurationLike
    slice_bps: int
    addresses: Tuple[Optional[str], ...] = field(default_factory=tuple)
    shares: Tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleParams:
        return cls(
            revocable=data.get("revocable", False),
            asset=data.get("asset"),
            total_amount=data.get("total_amount", 0),
            start=data.get("start", 0),
            cliff=data.get("cliff", 0),
            period_duration=data.get("period_duration", 0),
            slice_bps=data.get("slice_bps", 0),
            addresses=tuple(data.get("addresses", ())),
            shares=tuple(data.get("shares", ())),
        )

    @classmethod
    def from_json_file(cls, path: Path) -> ScheduleParams:
        with Path(path).open("r", encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))


def _require_int(name: str, value: Any, minimum: Optional[int] = None) -> int:
    # bool is an int subclass; a flag is never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSchedule(
            ScheduleRule.INVALID_PARAMETER,
            f"{name} must be an integer, got {type(value).__name__}",
        )
    if minimum is not None and value < minimum:
        raise InvalidSchedule(
            ScheduleRule.INVALID_PARAMETER,
            f"{name} must be >= {minimum}, got {value}",
        )
    if value > U64_MAX:
        raise InvalidSchedule(
            ScheduleRule.INVALID_PARAMETER,
            f"{name} exceeds the u64 range: {value}",
        )
    return value


class ScheduleValidator:
    """Validates schedule parameters against a VestingPolicy.

    Usage:
        validator = ScheduleValidator(VestingPolicy.default())
        schedule, beneficiaries = validator.validate(params)
    """

    def __init__(self, policy: Optional[VestingPolicy] = None) -> None:
        self._policy = policy or VestingPolicy.default()

    @property
    def policy(self) -> VestingPolicy:
        return self._policy

    def validate(
        self,
        params: ScheduleParams,
        unlock_at_cliff: Optional[bool] = None,
    ) -> Tuple[Schedule, List[Beneficiary]]:
        """Check every rule and build the immutable records.

        Raises InvalidSchedule on the first failing rule.
        Returns (schedule, beneficiaries) with released = 0 for all.
        """
        policy = self._policy

        if not isinstance(params.revocable, bool):
            raise InvalidSchedule(
                ScheduleRule.INVALID_PARAMETER,
                f"revocable must be a boolean, got {type(params.revocable).__name__}",
            )
        total_amount = _require_int("total_amount", params.total_amount)
        try:
            start_ts = as_timestamp(params.start)
        except ValueError as exc:
            raise InvalidSchedule(ScheduleRule.INVALID_PARAMETER, str(exc)) from exc
        start = _require_int("start", start_ts, minimum=0)
        cliff = _require_int("cliff", as_seconds(params.cliff), minimum=0)
        period_duration = _require_int(
            "period_duration", as_seconds(params.period_duration),
        )
        slice_bps = _require_int("slice_bps", params.slice_bps)
        shares = [_require_int(f"shares[{i}]", s) for i, s in enumerate(params.shares)]
        addresses = list(params.addresses)

        if total_amount <= 0:
            raise InvalidSchedule(
                ScheduleRule.ZERO_TOTAL_AMOUNT,
                "Vesting: total amount must be greater than 0.",
            )
        if period_duration <= 0:
            raise InvalidSchedule(
                ScheduleRule.ZERO_DURATION,
                "Vesting: duration must be greater than 0.",
            )
        if not (policy.min_slice_bps <= slice_bps <= policy.max_slice_bps):
            raise InvalidSchedule(
                ScheduleRule.SLICE_OUT_OF_RANGE,
                f"Vesting: slice per duration must be greater than "
                f"{policy.min_slice_bps} and lower/equal than "
                f"{policy.max_slice_bps}, got {slice_bps}.",
            )
        if len(addresses) != len(shares):
            raise InvalidSchedule(
                ScheduleRule.ARRAY_LENGTH_MISMATCH,
                f"Vesting: array length mismatch: {len(addresses)} addresses, "
                f"{len(shares)} shares.",
            )
        if is_zero_address(params.asset):
            raise InvalidSchedule(
                ScheduleRule.ZERO_ASSET_ADDRESS,
                "Vesting: asset must be a non-zero address.",
            )
        for index, address in enumerate(addresses):
            if is_zero_address(address):
                raise InvalidSchedule(
                    ScheduleRule.ZERO_BENEFICIARY_ADDRESS,
                    f"Vesting: beneficiary address at index {index} must be "
                    f"a non-zero address.",
                )
        for index, share in enumerate(shares):
            if share <= 0 or share > policy.max_share_bps:
                raise InvalidSchedule(
                    ScheduleRule.SHARE_OUT_OF_RANGE,
                    f"Vesting: share at index {index} must be greater than 0 "
                    f"and lower/equal than {policy.max_share_bps}, got {share}.",
                )
        if sum(shares) != BPS_DENOMINATOR:
            raise InvalidSchedule(
                ScheduleRule.SHARE_SUM_MISMATCH,
                f"Vesting: total amount of shares must be equal to "
                f"{BPS_DENOMINATOR}, got {sum(shares)}.",
            )
        seen: set[str] = set()
        for address in addresses:
            key = address_key(address)
            if key in seen:
                raise InvalidSchedule(
                    ScheduleRule.DUPLICATE_BENEFICIARY,
                    f"Vesting: duplicate beneficiary address {address}.",
                )
            seen.add(key)

        if unlock_at_cliff is None:
            unlock_at_cliff = policy.unlock_at_cliff

        schedule = Schedule(
            revocable=params.revocable,
            asset=str(params.asset),
            total_amount=total_amount,
            start=start,
            cliff=cliff,
            period_duration=period_duration,
            slice_bps=slice_bps,
            unlock_at_cliff=unlock_at_cliff,
        )
        beneficiaries = [
            Beneficiary(address=address, share_bps=share)
            for address, share in zip(addresses, shares)
        ]
        return schedule, beneficiaries


def validate_schedule(
    params: ScheduleParams,
    policy: Optional[VestingPolicy] = None,
) -> Tuple[Schedule, List[Beneficiary]]:
    """Convenience wrapper around ScheduleValidator.validate."""
    return ScheduleValidator(policy).validate(params)


def collect_errors(
    params: ScheduleParams,
    policy: Optional[VestingPolicy] = None,
) -> List[str]:
    """Return validation errors as strings (empty list means valid).

    Used by the CLI and tools, which report rather than raise.
    """
    try:
        validate_schedule(params, policy)
    except InvalidSchedule as exc:
        return [f"{exc.rule.value}: {exc}"]
    return []

