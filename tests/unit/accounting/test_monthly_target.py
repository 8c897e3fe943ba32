"""Unit tests for monthly target accounting.

January 2026 has 22 weekdays; Jan 1 (Thu) and Jan 26 (Mon) are public
holidays in Australia.
"""

from datetime import date, datetime, timezone

import pytest

from office_tracker.accounting.monthly_target import (
    MonthlyTargetSummary,
    compute_monthly_target,
    remaining_working_days,
    required_office_days,
    summarize_for,
    summary_message,
    working_days_in_month,
)
from office_tracker.core.types import TargetMode
from office_tracker.data.accessors import parse_user_record


USER_ID = "iPhone_16_Pro_1768800000000_rnlp3v4sh"

AU_HOLIDAYS = {"AU_2026": {"2026-01-01": "New Year's Day", "2026-01-26": "Australia Day"}}


def _record(raw):
    return parse_user_record(USER_ID, raw)


def _summary(**overrides):
    values = dict(
        year=2026, month=1, target_mode=TargetMode.PERCENTAGE, monthly_target=50,
        working_days=22, holidays_in_month=2, leaves_in_month=0,
        adjusted_working_days=20, required_office_days=10,
        office_days_completed=0, days_remaining=10,
    )
    values.update(overrides)
    return MonthlyTargetSummary(**values)


class TestCalendarCounts:
    
    @pytest.mark.parametrize("year,month,expected", [
        (2026, 1, 22),
        (2026, 2, 20),
        (2024, 2, 21),
    ])
    def test_working_days_in_month(self, year, month, expected):
        assert working_days_in_month(year, month) == expected
    
    def test_remaining_working_days_inclusive(self):
        assert remaining_working_days(date(2026, 1, 20)) == 9
        assert remaining_working_days(date(2026, 1, 31)) == 0


class TestRequiredOfficeDays:
    
    def test_percentage_rounds_up(self):
        assert required_office_days(TargetMode.PERCENTAGE, 60, 19) == 12
    
    def test_percentage_uses_float_product(self):
        # 0.07 * 100 is 7.000000000000001 in binary floating point
        assert required_office_days(TargetMode.PERCENTAGE, 7, 100) == 8
        # 0.57 * 100 is 56.99999999999999, so it rounds up to the exact value
        assert required_office_days(TargetMode.PERCENTAGE, 57, 100) == 57
    
    def test_fixed_days_verbatim(self):
        assert required_office_days(TargetMode.FIXED_DAYS, 12, 3) == 12
    
    def test_zero_adjusted_days(self):
        assert required_office_days(TargetMode.PERCENTAGE, 50, 0) == 0


class TestComputeMonthlyTarget:
    """Test compute_monthly_target."""
    
    def test_holidays_reduce_working_days(self, make_raw_user):
        summary = compute_monthly_target(_record(make_raw_user(cachedHolidays=AU_HOLIDAYS)), 2026, 1)
        
        assert summary.working_days == 22
        assert summary.holidays_in_month == 2
        assert summary.adjusted_working_days == 20
        assert summary.required_office_days == 10
        assert summary.days_remaining == 10
        assert summary.remaining_working_days is None
    
    def test_weekend_holiday_not_counted(self, make_raw_user):
        raw = make_raw_user(cachedHolidays={"AU_2026": {"2026-01-24": "Made-up Saturday"}})
        
        assert compute_monthly_target(_record(raw), 2026, 1).holidays_in_month == 0
    
    def test_holiday_in_two_caches_counted_once(self, make_raw_user):
        raw = make_raw_user(cachedHolidays={
            "AU_2026": {"2026-01-26": "Australia Day"},
            "AU_2026_v2": ["2026-01-26"],
        })
        
        assert compute_monthly_target(_record(raw), 2026, 1).holidays_in_month == 1
    
    def test_leave_and_office_days(self, make_raw_user):
        raw = make_raw_user(
            cachedHolidays=AU_HOLIDAYS,
            attendanceData={
                "2026-01-05": "office",
                "2026-01-06": {"status": "office", "checkInTime": 1767650400000},
                "2026-01-07": "office",
                "2026-01-10": "office",
                "2026-01-21": "leave",
                "2026-01-24": "leave",
                "2026-01-22": "remote",
                "2025-12-31": "office",
            },
        )
        
        summary = compute_monthly_target(_record(raw), 2026, 1)
        
        assert summary.leaves_in_month == 1
        assert summary.adjusted_working_days == 19
        assert summary.required_office_days == 10
        # Saturday office visits count toward the target
        assert summary.office_days_completed == 4
        assert summary.days_remaining == 6
        assert not summary.target_met
    
    def test_target_met_never_negative(self, make_raw_user):
        attendance = {f"2026-02-{d:02d}": "office" for d in range(2, 28)}
        raw = make_raw_user(attendanceData=attendance)
        
        summary = compute_monthly_target(_record(raw), 2026, 2)
        
        assert summary.days_remaining == 0
        assert summary.target_met
    
    def test_fixed_days_mode(self, make_raw_user):
        raw = make_raw_user(profile={"targetMode": "fixed_days", "monthlyTarget": 8})
        
        summary = compute_monthly_target(_record(raw), 2026, 1)
        
        assert summary.target_mode == TargetMode.FIXED_DAYS
        assert summary.required_office_days == 8

    def test_legacy_days_mode(self, valid_token):
        raw = {
            "fcmToken": valid_token,
            "settings": {"monthlyTarget": 15, "targetMode": "days"},
            "attendanceData": {"2026-01-05": "office"},
        }

        summary = compute_monthly_target(_record(raw), 2026, 1)

        assert summary.target_mode == TargetMode.FIXED_DAYS
        assert summary.required_office_days == 15
        assert summary.days_remaining == 14

    def test_legacy_settings_target(self, valid_token):
        raw = {"fcmToken": valid_token, "settings": {"monthlyTarget": 60, "targetMode": "percentage"}}
        
        summary = compute_monthly_target(_record(raw), 2026, 1)
        
        assert summary.monthly_target == 60
        assert summary.required_office_days == 14
    
    def test_default_target_when_unset(self, valid_token):
        summary = compute_monthly_target(_record({"fcmToken": valid_token}), 2026, 1)
        
        assert summary.monthly_target == 50
        assert summary.required_office_days == 11
    
    def test_adjusted_days_floored_at_zero(self, make_raw_user):
        raw = make_raw_user(attendanceData={
            f"2026-02-{d:02d}": "leave" for d in range(1, 29)
        })
        
        summary = compute_monthly_target(_record(raw), 2026, 2)
        
        assert summary.adjusted_working_days == 0
        assert summary.required_office_days == 0
    
    def test_invalid_month(self, make_raw_user):
        with pytest.raises(ValueError):
            compute_monthly_target(_record(make_raw_user()), 2026, 13)
    
    def test_reference_day_in_month(self, make_raw_user):
        summary = compute_monthly_target(
            _record(make_raw_user()), 2026, 1, reference_day=date(2026, 1, 20)
        )
        
        assert summary.remaining_working_days == 9
    
    def test_idempotent(self, make_raw_user):
        record = _record(make_raw_user(cachedHolidays=AU_HOLIDAYS))
        
        assert compute_monthly_target(record, 2026, 1) == compute_monthly_target(record, 2026, 1)


class TestSummarizeFor:
    
    def test_uses_sydney_month(self, make_raw_user, clock):
        # 14:00 UTC on 31 Jan is already 1 Feb in Sydney
        now = datetime(2026, 1, 31, 14, 0, tzinfo=timezone.utc)
        
        summary = summarize_for(_record(make_raw_user()), now, clock)
        
        assert (summary.year, summary.month) == (2026, 2)
        assert summary.remaining_working_days == 20
    
    def test_to_dict(self, make_raw_user, tuesday):
        data = summarize_for(_record(make_raw_user()), tuesday).to_dict()
        
        assert data["target_mode"] == "percentage"
        assert data["month"] == 1


class TestSummaryMessage:
    
    def test_target_met(self):
        message = summary_message(_summary(office_days_completed=12, days_remaining=0))
        
        assert message == (
            "Great job! You've met your office target for this month (12 days). Keep it up! 🎉"
        )
    
    def test_one_day_left(self):
        message = summary_message(_summary(office_days_completed=9, days_remaining=1))
        
        assert message == (
            "You need to come in 1 more day this month to meet your target. "
            "You've completed 9 days so far. 💪"
        )
    
    def test_several_days_left(self):
        message = summary_message(_summary(office_days_completed=3, days_remaining=7))
        
        assert message == (
            "You need to come in 7 more days this month. "
            "You've completed 3 days so far. Let's do this! 🚀"
        )
