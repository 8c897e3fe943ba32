"""Core types and enums."""

from enum import Enum


class TrackingMode(str, Enum):
    """How a user's attendance is captured."""
    MANUAL = "manual"
    AUTO = "auto"


class TargetMode(str, Enum):
    """How the monthly office target is expressed."""
    PERCENTAGE = "percentage"
    FIXED_DAYS = "fixed_days"


class Platform(str, Enum):
    """Device platform of an app install."""
    IOS = "ios"
    ANDROID = "android"
    UNKNOWN = "unknown"


class AttendanceStatus(str, Enum):
    """Attendance statuses with meaning to the engine.
    
    The app writes other statuses too; those are carried as plain strings.
    """
    OFFICE = "office"
    REMOTE = "remote"
    LEAVE = "leave"


class ReminderKind(str, Enum):
    """Notification kinds the engine can evaluate and send."""
    MANUAL_REMINDER = "manual_reminder"
    AUTO_REMINDER = "auto_reminder"
    GEOFENCE_CONFIRMATION = "geofence_confirmation"
    WEEKLY_SUMMARY = "weekly_summary"
    TEST_NOTIFICATION = "test_notification"
