"""User record schema - typed view over the raw per-user JSON blob.

Records are written by the mobile client and by geofencing callbacks, so
every sub-object is optional and unknown keys are kept. Raw store keys
(``fcmToken``, ``userData``, ``attendanceData``) and the descriptive names
(``pushToken``, ``profile``, ``attendance``) are both accepted.
"""

from typing import Any, Dict, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Profile(BaseModel):
    """The ``userData`` section written during onboarding.
    
    Absent on legacy records created before onboarding wrote it.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)
    
    company_name: Optional[str] = Field(default=None, alias="companyName")
    company_address: Optional[str] = Field(default=None, alias="companyAddress")
    company_location: Optional[Dict[str, Any]] = Field(default=None, alias="companyLocation")
    tracking_mode: Optional[str] = Field(default=None, alias="trackingMode")
    country: Optional[str] = None
    country_name: Optional[str] = Field(default=None, alias="countryName")
    notifications_enabled: Optional[bool] = Field(default=None, alias="notificationsEnabled")
    monthly_target: Optional[Union[int, float]] = Field(default=None, alias="monthlyTarget")
    target_mode: Optional[str] = Field(default=None, alias="targetMode")
    
    @property
    def is_empty(self) -> bool:
        """True when the section exists but carries no keys at all."""
        return not self.model_fields_set and not self.model_extra


class LegacySettings(BaseModel):
    """The ``settings`` section, superseded by the profile."""
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)
    
    monthly_target: Optional[Union[int, float]] = Field(default=None, alias="monthlyTarget")
    target_mode: Optional[str] = Field(default=None, alias="targetMode")
    tracking_mode: Optional[str] = Field(default=None, alias="trackingMode")


class AttendanceEntry(BaseModel):
    """Object form of an attendance value.
    
    Older clients write a bare status string instead.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)
    
    status: Optional[str] = None
    check_in_time: Optional[Union[int, float, str]] = Field(default=None, alias="checkInTime")
    timestamp: Optional[Union[int, float, str]] = None


class NearOfficeMarker(BaseModel):
    """Geofence trigger marker written by the location callback."""
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)
    
    detected: bool = False
    date: Optional[str] = None
    timestamp: Optional[Union[int, float]] = None


AttendanceValue = Optional[Union[AttendanceEntry, str, bool, int, float]]


class UserRecord(BaseModel):
    """One installed app instance.
    
    ``user_id`` is the device-derived key the record is stored under, e.g.
    ``iPhone_16_Pro_1762136337037_rnlp3v4sh`` (model, 13-digit creation ms,
    random suffix). Device names may themselves contain underscores.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)
    
    user_id: str = Field(..., description="Record key under /users")
    platform: Optional[str] = None
    device_model: Optional[str] = Field(default=None, alias="deviceModel")
    app_version: Optional[str] = Field(default=None, alias="appVersion")
    push_token: Optional[str] = Field(
        default=None,
        alias="fcmToken",
        validation_alias=AliasChoices("fcmToken", "pushToken", "push_token"),
    )
    push_token_updated_at: Optional[Union[int, float]] = Field(
        default=None,
        alias="fcmTokenUpdatedAt",
        validation_alias=AliasChoices("fcmTokenUpdatedAt", "pushTokenUpdatedAt", "push_token_updated_at"),
    )
    profile: Optional[Profile] = Field(
        default=None,
        alias="userData",
        validation_alias=AliasChoices("userData", "profile"),
    )
    settings: Optional[LegacySettings] = None
    attendance: Dict[str, AttendanceValue] = Field(
        default_factory=dict,
        alias="attendanceData",
        validation_alias=AliasChoices("attendanceData", "attendance"),
    )
    planned_days: Dict[str, Any] = Field(default_factory=dict, alias="plannedDays")
    cached_holidays: Dict[str, Any] = Field(default_factory=dict, alias="cachedHolidays")
    near_office: Optional[NearOfficeMarker] = Field(default=None, alias="nearOffice")
    last_updated: Optional[Union[int, float]] = Field(default=None, alias="lastUpdated")

    @field_validator("attendance", "planned_days", "cached_holidays", mode="before")
    @classmethod
    def _null_map_is_empty(cls, value: Any) -> Any:
        # The realtime database returns null for a deleted subtree
        return {} if value is None else value
