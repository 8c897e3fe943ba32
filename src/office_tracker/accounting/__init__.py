"""Attendance accounting for weekly summaries."""

from office_tracker.accounting.monthly_target import (
    MonthlyTargetSummary,
    compute_monthly_target,
    summarize_for,
    summary_message,
    working_days_in_month,
)

__all__ = [
    "MonthlyTargetSummary",
    "compute_monthly_target",
    "summarize_for",
    "summary_message",
    "working_days_in_month",
]
