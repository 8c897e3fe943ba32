"""Reference clock - all "today" computations in one fixed timezone.

The deployment reads calendar dates in Australia/Sydney regardless of where
the job runs, so the engine never looks at ambient system time. Callers pass
``now`` explicitly; the clock only converts.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from office_tracker.common.constants import CalendarConstants
from office_tracker.common.exceptions import ConfigurationError


WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


class ReferenceClock:
    """Converts instants to local calendar dates in the reference timezone."""
    
    def __init__(
        self,
        timezone_name: str = CalendarConstants.REFERENCE_TIMEZONE,
        weekend_days: tuple = CalendarConstants.WEEKEND_DAYS,
    ):
        try:
            self.tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(
                f"Unknown reference timezone: {timezone_name}",
                details={"timezone": timezone_name},
            ) from e
        self.timezone_name = timezone_name
        self.weekend_days = frozenset(d.lower() for d in weekend_days)
    
    @staticmethod
    def utcnow() -> datetime:
        return datetime.now(timezone.utc)
    
    def localize(self, now: Optional[datetime] = None) -> datetime:
        """Return ``now`` in the reference timezone.
        
        Naive datetimes are taken to be UTC.
        """
        if now is None:
            now = self.utcnow()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz)
    
    def local_date(self, now: Optional[datetime] = None) -> date:
        return self.localize(now).date()
    
    def today_key(self, now: Optional[datetime] = None) -> str:
        """Local date as the ``YYYY-MM-DD`` key used by attendance maps."""
        return self.local_date(now).strftime(CalendarConstants.DATE_FORMAT)
    
    def weekday_name(self, now: Optional[datetime] = None) -> str:
        return WEEKDAY_NAMES[self.local_date(now).weekday()]
    
    def is_weekend(self, now: Optional[datetime] = None) -> bool:
        return self.weekday_name(now) in self.weekend_days
