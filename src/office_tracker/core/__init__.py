"""Core types and the reference clock."""

from office_tracker.core.types import (
    AttendanceStatus,
    Platform,
    ReminderKind,
    TargetMode,
    TrackingMode,
)
from office_tracker.core.clock import ReferenceClock, WEEKDAY_NAMES

__all__ = [
    "AttendanceStatus",
    "Platform",
    "ReminderKind",
    "TargetMode",
    "TrackingMode",
    "ReferenceClock",
    "WEEKDAY_NAMES",
]
