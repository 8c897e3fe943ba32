"""Office Tracker - attendance reminder and summary notification engine."""

__version__ = "0.1.0"
__author__ = "Office Tracker Team"

from office_tracker.core.types import ReminderKind, TrackingMode, TargetMode

__all__ = [
    "ReminderKind",
    "TrackingMode",
    "TargetMode",
]
