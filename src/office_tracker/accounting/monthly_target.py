"""Attendance accounting - monthly office-day target and shortfall.

Pure functions over a record snapshot and a calendar month. Calling any of
them twice on the same record yields the same summary.
"""

import calendar
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from office_tracker.common.constants import TargetConstants
from office_tracker.core.clock import ReferenceClock
from office_tracker.core.types import AttendanceStatus, TargetMode
from office_tracker.data.accessors import (
    effective_monthly_target,
    effective_target_mode,
    holiday_dates,
    iter_statuses,
)
from office_tracker.data.schemas.user_record import UserRecord


@dataclass(frozen=True)
class MonthlyTargetSummary:
    """Target and progress for one record in one calendar month."""
    year: int
    month: int
    target_mode: TargetMode
    monthly_target: Union[int, float]
    working_days: int
    holidays_in_month: int
    leaves_in_month: int
    adjusted_working_days: int
    required_office_days: Union[int, float]
    office_days_completed: int
    days_remaining: Union[int, float]
    remaining_working_days: Optional[int] = None

    @property
    def target_met(self) -> bool:
        return self.days_remaining == 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["target_mode"] = self.target_mode.value
        return data


def _is_weekday(day: date) -> bool:
    return day.weekday() < 5


def _parse_day(day_key: str) -> Optional[date]:
    try:
        return date.fromisoformat(day_key)
    except ValueError:
        return None


def _month_prefix(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}-"


def working_days_in_month(year: int, month: int) -> int:
    """Count of Monday-Friday dates in the month."""
    days_in_month = calendar.monthrange(year, month)[1]
    return sum(1 for d in range(1, days_in_month + 1) if _is_weekday(date(year, month, d)))


def remaining_working_days(reference_day: date) -> int:
    """Weekdays from ``reference_day`` to the end of its month, inclusive."""
    days_in_month = calendar.monthrange(reference_day.year, reference_day.month)[1]
    return sum(
        1
        for d in range(reference_day.day, days_in_month + 1)
        if _is_weekday(date(reference_day.year, reference_day.month, d))
    )


def holidays_in_month(record: UserRecord, year: int, month: int) -> int:
    """Weekday holidays in the month, each date counted once across caches."""
    prefix = _month_prefix(year, month)
    count = 0
    for day_key in holiday_dates(record):
        if not day_key.startswith(prefix):
            continue
        day = _parse_day(day_key)
        if day is not None and _is_weekday(day):
            count += 1
    return count


def leaves_in_month(record: UserRecord, year: int, month: int) -> int:
    """Weekday dates in the month whose attendance status is leave."""
    prefix = _month_prefix(year, month)
    count = 0
    for day_key, status in iter_statuses(record):
        if status != AttendanceStatus.LEAVE.value or not day_key.startswith(prefix):
            continue
        day = _parse_day(day_key)
        if day is not None and _is_weekday(day):
            count += 1
    return count


def office_days_in_month(record: UserRecord, year: int, month: int) -> int:
    """Dates in the month logged as office, weekends included."""
    prefix = _month_prefix(year, month)
    return sum(
        1
        for day_key, status in iter_statuses(record)
        if status == AttendanceStatus.OFFICE.value and day_key.startswith(prefix)
    )


def required_office_days(
    target_mode: TargetMode,
    monthly_target: Union[int, float],
    adjusted_working_days: int,
) -> Union[int, float]:
    """Office days needed to meet the target.

    A percentage target is scaled by the adjusted working days and rounded
    up; a fixed-days target is used as is.
    """
    if target_mode == TargetMode.PERCENTAGE:
        return math.ceil((monthly_target / 100) * adjusted_working_days)
    return monthly_target


def compute_monthly_target(
    record: UserRecord,
    year: int,
    month: int,
    reference_day: Optional[date] = None,
    default_target: Union[int, float] = TargetConstants.DEFAULT_MONTHLY_TARGET,
) -> MonthlyTargetSummary:
    """Compute the monthly target summary for a record.

    Args:
        record: Parsed user record
        year: Calendar year
        month: Calendar month, 1-12
        reference_day: Day the summary is read on; fills
            ``remaining_working_days`` when it falls in the month
        default_target: Target used when the record sets none

    Returns:
        MonthlyTargetSummary
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    target_mode = effective_target_mode(record)
    monthly_target = effective_monthly_target(record, default=default_target)

    working_days = working_days_in_month(year, month)
    holidays = holidays_in_month(record, year, month)
    leaves = leaves_in_month(record, year, month)
    adjusted = max(0, working_days - holidays - leaves)

    required = required_office_days(target_mode, monthly_target, adjusted)
    completed = office_days_in_month(record, year, month)

    remaining = None
    if reference_day is not None and (reference_day.year, reference_day.month) == (year, month):
        remaining = remaining_working_days(reference_day)

    return MonthlyTargetSummary(
        year=year,
        month=month,
        target_mode=target_mode,
        monthly_target=monthly_target,
        working_days=working_days,
        holidays_in_month=holidays,
        leaves_in_month=leaves,
        adjusted_working_days=adjusted,
        required_office_days=required,
        office_days_completed=completed,
        days_remaining=max(0, required - completed),
        remaining_working_days=remaining,
    )


def summarize_for(
    record: UserRecord,
    now: datetime,
    clock: Optional[ReferenceClock] = None,
    default_target: Union[int, float] = TargetConstants.DEFAULT_MONTHLY_TARGET,
) -> MonthlyTargetSummary:
    """Summary for the reference-local month containing ``now``."""
    clock = clock or ReferenceClock()
    today = clock.local_date(now)
    return compute_monthly_target(
        record, today.year, today.month, reference_day=today, default_target=default_target
    )


def _days(value: Union[int, float]) -> str:
    # 12.0 reads as 12 in user-facing copy
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def summary_message(summary: MonthlyTargetSummary) -> str:
    """Weekly summary notification body."""
    remaining = summary.days_remaining
    completed = summary.office_days_completed

    if remaining == 0:
        return (
            f"Great job! You've met your office target for this month "
            f"({completed} days). Keep it up! 🎉"
        )
    if remaining == 1:
        return (
            f"You need to come in 1 more day this month to meet your target. "
            f"You've completed {completed} days so far. 💪"
        )
    return (
        f"You need to come in {_days(remaining)} more days this month. "
        f"You've completed {completed} days so far. Let's do this! 🚀"
    )
