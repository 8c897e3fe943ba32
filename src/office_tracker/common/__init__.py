"""Common utilities - logging, config, exceptions."""

from office_tracker.common.logging.logger import get_logger
from office_tracker.common.config import Config, get_config, reset_config
from office_tracker.common.exceptions import (
    OfficeTrackerException,
    ConfigurationError,
    MalformedRecordError,
    RecordStoreError,
    PushTransportError,
    UserNotFoundError,
)

__all__ = [
    # Logging
    "get_logger",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # Exceptions
    "OfficeTrackerException",
    "ConfigurationError",
    "MalformedRecordError",
    "RecordStoreError",
    "PushTransportError",
    "UserNotFoundError",
]
