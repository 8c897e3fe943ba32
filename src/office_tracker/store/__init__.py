"""Record store access."""

from office_tracker.store.realtime_db import RealtimeDatabaseClient

__all__ = ["RealtimeDatabaseClient"]
