"""Centralized constants for Office Tracker."""


# ===== CALENDAR =====
class CalendarConstants:
    REFERENCE_TIMEZONE = "Australia/Sydney"
    DATE_FORMAT = "%Y-%m-%d"
    WEEKEND_DAYS = ("saturday", "sunday")


# ===== TARGETS =====
class TargetConstants:
    DEFAULT_TRACKING_MODE = "manual"
    DEFAULT_TARGET_MODE = "percentage"
    DEFAULT_MONTHLY_TARGET = 50


# ===== PUSH RELAY =====
class PushConstants:
    RELAY_URL = "https://exp.host/--/api/v2/push/send"
    TOKEN_PREFIX = "ExponentPushToken"
    MAX_MESSAGES_PER_REQUEST = 100
    REQUEST_TIMEOUT_SECONDS = 15.0
    DEFAULT_SOUND = "default"
    DEFAULT_PRIORITY = "high"
    DEVICE_NOT_REGISTERED = "DeviceNotRegistered"


# ===== DISPATCH =====
class DispatchConstants:
    DEFAULT_MAX_CONCURRENCY = 4


# ===== RECORD STORE =====
class StoreConstants:
    USERS_PATH = "users"
    REQUEST_TIMEOUT_SECONDS = 30.0


# ===== MONITORING =====
class MonitoringConstants:
    DEFAULT_NAMESPACE = "OfficeTracker"
    DEFAULT_REGION = "ap-southeast-2"
    DEFAULT_BATCH_SIZE = 20
    CLOUDWATCH_MAX_METRICS_PER_REQUEST = 20
