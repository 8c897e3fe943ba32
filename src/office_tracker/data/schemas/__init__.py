"""Data schemas - canonical Pydantic definitions."""

from office_tracker.data.schemas.user_record import (
    AttendanceEntry,
    LegacySettings,
    NearOfficeMarker,
    Profile,
    UserRecord,
)

__all__ = [
    "AttendanceEntry",
    "LegacySettings",
    "NearOfficeMarker",
    "Profile",
    "UserRecord",
]
