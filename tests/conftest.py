"""Shared fixtures for Office Tracker tests.

Every test passes an explicit ``now``. Dates are in January 2026, when
Australia/Sydney is on AEDT (UTC+11):

- 2026-01-19 Monday, 2026-01-20 Tuesday, 2026-01-24 Saturday
- 2026-01-26 Monday, Australia Day
"""

import copy
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from office_tracker.core.clock import ReferenceClock
from office_tracker.eligibility.engine import EligibilityEngine
from office_tracker.eligibility.schemas import ReminderRules


VALID_TOKEN = "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"

# 11:00 Tuesday 2026-01-20 in Sydney
TUESDAY_MORNING = datetime(2026, 1, 20, 0, 0, tzinfo=timezone.utc)
# 11:00 Monday 2026-01-19 in Sydney
MONDAY_MORNING = datetime(2026, 1, 19, 0, 0, tzinfo=timezone.utc)
# 11:00 Saturday 2026-01-24 in Sydney
SATURDAY_MORNING = datetime(2026, 1, 24, 0, 0, tzinfo=timezone.utc)

BASE_USER = {
    "fcmToken": VALID_TOKEN,
    "fcmTokenUpdatedAt": 1768800000000,
    "platform": "ios",
    "deviceModel": "iPhone 16 Pro",
    "userData": {
        "companyName": "Acme",
        "trackingMode": "manual",
        "monthlyTarget": 50,
        "targetMode": "percentage",
        "country": "AU",
    },
    "attendanceData": {},
    "cachedHolidays": {},
}


@pytest.fixture
def valid_token() -> str:
    return VALID_TOKEN


@pytest.fixture
def tuesday() -> datetime:
    return TUESDAY_MORNING


@pytest.fixture
def monday() -> datetime:
    return MONDAY_MORNING


@pytest.fixture
def saturday() -> datetime:
    return SATURDAY_MORNING


@pytest.fixture
def make_raw_user():
    """Build a raw record blob as stored under /users/{id}.

    Keyword arguments replace top-level keys; ``profile`` entries are
    merged into ``userData``. Pass a value of ``None`` to drop a key.
    """
    def _make(profile=None, **overrides):
        raw = copy.deepcopy(BASE_USER)
        if profile:
            raw["userData"].update(profile)
        for key, value in overrides.items():
            if value is None:
                raw.pop(key, None)
            else:
                raw[key] = value
        return raw
    return _make


@pytest.fixture
def clock() -> ReferenceClock:
    return ReferenceClock()


@pytest.fixture
def engine() -> EligibilityEngine:
    """Engine with the built-in rule defaults."""
    return EligibilityEngine(rules=ReminderRules())


@pytest.fixture
def relay_session():
    """Mock requests session whose POST answers one ok ticket."""
    session = MagicMock()
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"data": {"status": "ok", "id": "ticket-1"}}
    session.post.return_value = response
    return session
