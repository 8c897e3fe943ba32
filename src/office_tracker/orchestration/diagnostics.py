"""Fleet diagnostics - read-only health counts over a user snapshot."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from office_tracker.common.constants import PushConstants
from office_tracker.common.exceptions import MalformedRecordError
from office_tracker.core.clock import ReferenceClock
from office_tracker.data.accessors import (
    creation_time,
    effective_platform,
    effective_tracking_mode,
    geofence_triggered_on,
    has_valid_push_token,
    is_active_without_profile,
    logged_on,
    parse_user_record,
)


@dataclass
class FleetReport:
    today: str
    total: int = 0
    malformed: List[str] = field(default_factory=list)
    missing_profile: int = 0
    empty_profile: int = 0
    active_without_profile: List[str] = field(default_factory=list)
    platforms: Counter = field(default_factory=Counter)
    tracking_modes: Counter = field(default_factory=Counter)
    valid_tokens: int = 0
    invalid_tokens: int = 0
    missing_tokens: int = 0
    logged_today: int = 0
    geofence_triggered_today: int = 0
    new_today: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "today": self.today,
            "total": self.total,
            "malformed": len(self.malformed),
            "missing_profile": self.missing_profile,
            "empty_profile": self.empty_profile,
            "active_without_profile": len(self.active_without_profile),
            "platforms": dict(self.platforms),
            "tracking_modes": dict(self.tracking_modes),
            "tokens": {
                "valid": self.valid_tokens,
                "invalid": self.invalid_tokens,
                "missing": self.missing_tokens,
            },
            "logged_today": self.logged_today,
            "geofence_triggered_today": self.geofence_triggered_today,
            "new_today": self.new_today,
        }


def fleet_report(
    raw_users: Mapping[str, Any],
    now: datetime,
    clock: Optional[ReferenceClock] = None,
    token_prefix: str = PushConstants.TOKEN_PREFIX,
) -> FleetReport:
    """Count profile, token, platform and activity states across the fleet.

    Records are "new today" when the creation time in their id falls on
    the reference-local ``today``.
    """
    clock = clock or ReferenceClock()
    today = clock.today_key(now)
    report = FleetReport(today=today)

    for user_id, raw in (raw_users or {}).items():
        report.total += 1
        try:
            record = parse_user_record(user_id, raw)
        except MalformedRecordError:
            report.malformed.append(user_id)
            continue

        if record.profile is None:
            report.missing_profile += 1
        elif record.profile.is_empty:
            report.empty_profile += 1
        if is_active_without_profile(record):
            report.active_without_profile.append(user_id)

        report.platforms[effective_platform(record).value] += 1
        report.tracking_modes[effective_tracking_mode(record).value] += 1

        if not record.push_token:
            report.missing_tokens += 1
        elif has_valid_push_token(record, token_prefix):
            report.valid_tokens += 1
        else:
            report.invalid_tokens += 1

        if logged_on(record, today):
            report.logged_today += 1
        if geofence_triggered_on(record, today):
            report.geofence_triggered_today += 1

        created = creation_time(record)
        if created is not None and clock.today_key(created) == today:
            report.new_today += 1

    return report
