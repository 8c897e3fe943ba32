"""Data layer - user record schema and the accessor functions over it."""

from office_tracker.data.schemas import (
    AttendanceEntry,
    LegacySettings,
    NearOfficeMarker,
    Profile,
    UserRecord,
)
from office_tracker.data.accessors import (
    attendance_status,
    creation_time,
    effective_monthly_target,
    effective_platform,
    effective_target_mode,
    effective_tracking_mode,
    geofence_triggered_on,
    has_profile,
    has_valid_push_token,
    holiday_dates,
    is_active_without_profile,
    is_holiday,
    logged_on,
    parse_user_record,
)

__all__ = [
    "AttendanceEntry",
    "LegacySettings",
    "NearOfficeMarker",
    "Profile",
    "UserRecord",
    "attendance_status",
    "creation_time",
    "effective_monthly_target",
    "effective_platform",
    "effective_target_mode",
    "effective_tracking_mode",
    "geofence_triggered_on",
    "has_profile",
    "has_valid_push_token",
    "holiday_dates",
    "is_active_without_profile",
    "is_holiday",
    "logged_on",
    "parse_user_record",
]
