"""User record accessor - effective values despite schema drift.

Every function here is a pure read. A missing intermediate object resolves
to "not set" and falls back to a default; nothing here raises for a record
that is merely incomplete. Only ``parse_user_record`` raises, and only for
sub-objects of the wrong JSON type.
"""

import re
from datetime import datetime, timezone
from typing import Any, FrozenSet, Optional, Union

from pydantic import ValidationError

from office_tracker.common.constants import PushConstants, TargetConstants
from office_tracker.common.exceptions import MalformedRecordError
from office_tracker.core.types import Platform, TargetMode, TrackingMode
from office_tracker.data.schemas.user_record import AttendanceEntry, UserRecord


_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_CREATION_MS = re.compile(r"_(\d{13})(?:_|$)")
_IOS_MARKERS = ("iphone", "ipad")


def parse_user_record(user_id: str, raw: Any) -> UserRecord:
    """Build a typed record from the raw JSON blob stored under /users/{id}.

    Args:
        user_id: Record key
        raw: Decoded JSON value for that key

    Returns:
        UserRecord

    Raises:
        MalformedRecordError: If the blob or one of its sections has the
            wrong JSON type (e.g. ``userData`` is a string)
    """
    if not isinstance(raw, dict):
        raise MalformedRecordError(
            f"Record is a {type(raw).__name__}, expected an object",
            user_id=user_id,
        )

    data = dict(raw)
    data["user_id"] = user_id
    try:
        return UserRecord.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise MalformedRecordError(
            f"Record has malformed fields: {', '.join(fields)}",
            user_id=user_id,
            details={"fields": fields},
        ) from e


# =============================================================================
# MODES AND TARGETS
# =============================================================================

def _coerce_enum(enum_cls, value: Optional[str]):
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return None


def effective_tracking_mode(record: UserRecord) -> TrackingMode:
    """Profile value, then legacy settings, then manual.

    A value outside the known modes counts as not set.
    """
    profile_mode = _coerce_enum(TrackingMode, record.profile.tracking_mode) if record.profile else None
    if profile_mode is not None:
        return profile_mode

    settings_mode = _coerce_enum(TrackingMode, record.settings.tracking_mode) if record.settings else None
    if settings_mode is not None:
        return settings_mode

    return TrackingMode(TargetConstants.DEFAULT_TRACKING_MODE)


def _coerce_target_mode(value: Optional[str]) -> Optional[TargetMode]:
    if not isinstance(value, str) or not value.strip():
        return None
    if value.strip().lower() == TargetMode.PERCENTAGE.value:
        return TargetMode.PERCENTAGE
    return TargetMode.FIXED_DAYS


def effective_target_mode(record: UserRecord) -> TargetMode:
    """Profile value, then legacy settings, then percentage.

    Any set value other than ``percentage`` means fixed days; the mobile
    client writes ``days`` for that mode.
    """
    profile_mode = _coerce_target_mode(record.profile.target_mode) if record.profile else None
    if profile_mode is not None:
        return profile_mode

    settings_mode = _coerce_target_mode(record.settings.target_mode) if record.settings else None
    if settings_mode is not None:
        return settings_mode

    return TargetMode(TargetConstants.DEFAULT_TARGET_MODE)


def effective_monthly_target(
    record: UserRecord,
    default: Union[int, float] = TargetConstants.DEFAULT_MONTHLY_TARGET,
) -> Union[int, float]:
    """Profile value, then legacy settings, then ``default``.

    Zero counts as not set, as it always has for the scheduled jobs.
    """
    if record.profile and record.profile.monthly_target:
        return record.profile.monthly_target
    if record.settings and record.settings.monthly_target:
        return record.settings.monthly_target
    return default


# =============================================================================
# DEVICE AND TOKEN
# =============================================================================

def effective_platform(record: UserRecord) -> Platform:
    """Stored platform, else inferred from the device model or record id."""
    stored = _coerce_enum(Platform, record.platform)
    if stored is not None:
        return stored

    haystacks = (record.device_model or "", record.user_id)
    for text in haystacks:
        lowered = text.lower()
        if any(marker in lowered for marker in _IOS_MARKERS):
            return Platform.IOS

    return Platform.UNKNOWN


def has_valid_push_token(
    record: UserRecord,
    prefix: str = PushConstants.TOKEN_PREFIX,
) -> bool:
    """Token is present and carries the relay's token prefix."""
    token = record.push_token
    return isinstance(token, str) and token.startswith(prefix)


def creation_time(record_or_id: Union[UserRecord, str]) -> Optional[datetime]:
    """Creation instant encoded in the record id, if one can be found.

    The id is ``<device model>_<13-digit ms>_<suffix>``; the model part may
    contain underscores and digits, so the last 13-digit group wins.
    """
    user_id = record_or_id.user_id if isinstance(record_or_id, UserRecord) else record_or_id
    matches = _CREATION_MS.findall(user_id)
    if not matches:
        return None
    return datetime.fromtimestamp(int(matches[-1]) / 1000, tz=timezone.utc)


# =============================================================================
# ATTENDANCE
# =============================================================================

def _is_present(value: Any) -> bool:
    # Same truthiness the mobile client and scheduled jobs apply
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0
    return True


def logged_on(record: UserRecord, day_key: str) -> bool:
    """Attendance exists for ``day_key`` in either bare or object form."""
    return _is_present(record.attendance.get(day_key))


def attendance_status(record: UserRecord, day_key: str) -> Optional[str]:
    """Status string for a date, whatever form the entry was written in."""
    entry = record.attendance.get(day_key)
    if isinstance(entry, str):
        return entry
    if isinstance(entry, AttendanceEntry):
        return entry.status
    return None


def iter_statuses(record: UserRecord):
    """Yield ``(day_key, status)`` for entries with a readable status."""
    for day_key in record.attendance:
        status = attendance_status(record, day_key)
        if status is not None:
            yield day_key, status


# =============================================================================
# HOLIDAYS AND GEOFENCE
# =============================================================================

def _dates_from_cache_value(value: Any):
    if isinstance(value, dict):
        for key in value:
            if isinstance(key, str) and _DATE_KEY.match(key):
                yield key
    elif isinstance(value, list):
        for item in value:
            if isinstance(item, str) and _DATE_KEY.match(item):
                yield item
            elif isinstance(item, dict) and isinstance(item.get("date"), str):
                if _DATE_KEY.match(item["date"]):
                    yield item["date"]


def holiday_dates(record: UserRecord) -> FrozenSet[str]:
    """Every holiday date cached on the record, across countries and years.

    Accepts ``{country_year: {date: name}}``, ``{country_year: [date, ...]}``,
    ``{country_year: [{date, name}, ...]}`` and the legacy flat
    ``{date: name}`` layout. Dates repeated across caches appear once.
    """
    dates = set()
    for key, value in record.cached_holidays.items():
        if _DATE_KEY.match(key):
            dates.add(key)
        else:
            dates.update(_dates_from_cache_value(value))
    return frozenset(dates)


def is_holiday(record: UserRecord, day_key: str) -> bool:
    """``day_key`` appears in any holiday cache on the record."""
    return day_key in holiday_dates(record)


def geofence_triggered_on(record: UserRecord, day_key: str) -> bool:
    """The near-office marker fired and is dated ``day_key``."""
    marker = record.near_office
    return marker is not None and marker.detected is True and marker.date == day_key


def has_profile(record: UserRecord) -> bool:
    return record.profile is not None


def is_active_without_profile(record: UserRecord) -> bool:
    """Attendance was logged but the profile section is missing."""
    return record.profile is None and any(_is_present(v) for v in record.attendance.values())
