"""Logging helpers."""

from office_tracker.common.logging.logger import get_logger, short_id

__all__ = ["get_logger", "short_id"]
