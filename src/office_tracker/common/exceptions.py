"""Custom exceptions for Office Tracker.

Provides a hierarchy of exceptions for different error types.
All Office Tracker exceptions inherit from OfficeTrackerException.
"""

from typing import Any, Dict, Optional


class OfficeTrackerException(Exception):
    """Base exception for all Office Tracker errors.
    
    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """
    
    def __init__(
        self,
        message: str,
        code: str = "OFFICE_TRACKER_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(OfficeTrackerException):
    """Raised when configuration is invalid or missing.
    
    Fatal to a whole run, never raised per record.
    """
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class MalformedRecordError(OfficeTrackerException):
    """Raised when a user record has sub-objects of the wrong JSON type."""
    
    def __init__(
        self,
        message: str,
        user_id: str,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["user_id"] = user_id
        self.user_id = user_id
        super().__init__(message, code="MALFORMED_RECORD", details=details)


class RecordStoreError(OfficeTrackerException):
    """Raised when the realtime database cannot be read or written."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="RECORD_STORE_ERROR", details=details)


class PushTransportError(OfficeTrackerException):
    """Raised when the push relay cannot be reached or answers at HTTP level.
    
    Retryable. Relay-level rejections are tickets, not exceptions.
    """
    
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, code="PUSH_TRANSPORT_ERROR", details=details)


class UserNotFoundError(OfficeTrackerException):
    """Raised when a single-user operation names a record that does not exist."""
    
    def __init__(self, user_id: str, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details["user_id"] = user_id
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}", code="USER_NOT_FOUND", details=details)
