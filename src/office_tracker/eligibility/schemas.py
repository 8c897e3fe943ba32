"""Eligibility schemas - rule configuration and evaluation results."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field, field_validator

from office_tracker.common.constants import CalendarConstants, PushConstants, TargetConstants
from office_tracker.core.clock import WEEKDAY_NAMES
from office_tracker.core.types import ReminderKind, TargetMode, TrackingMode
from office_tracker.data.schemas.user_record import UserRecord


class FailedRule(str, Enum):
    """Why a record was not eligible for a reminder."""
    TRACKING_MODE_MISMATCH = "trackingModeMismatch"
    NO_VALID_PUSH_TOKEN = "noValidPushToken"
    ALREADY_LOGGED = "alreadyLogged"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    NO_GEOFENCE_TRIGGER_TODAY = "noGeofenceTriggerToday"
    NOT_WEEKLY_SEND_DAY = "notWeeklySendDay"


class EligibilityDecision(str, Enum):
    ELIGIBLE = "eligible"
    NOT_ELIGIBLE = "not_eligible"


# =============================================================================
# RULE CONFIGURATION (config/reminder_rules.yaml)
# =============================================================================

def _validate_day_names(days: List[str]) -> List[str]:
    lowered = [d.strip().lower() for d in days]
    unknown = [d for d in lowered if d not in WEEKDAY_NAMES]
    if unknown:
        raise ValueError(f"Unknown weekday name(s): {', '.join(unknown)}")
    return lowered


class RulesMetadata(BaseModel):
    version: str = Field(default="1.0.0", description="Rule set version")
    last_updated: Optional[str] = None
    description: Optional[str] = None


class CalendarRules(BaseModel):
    reference_timezone: str = Field(
        default=CalendarConstants.REFERENCE_TIMEZONE,
        description="Timezone whose local calendar defines 'today'",
    )
    weekend_days: List[str] = Field(default_factory=lambda: list(CalendarConstants.WEEKEND_DAYS))

    @field_validator("weekend_days")
    @classmethod
    def _days(cls, value: List[str]) -> List[str]:
        return _validate_day_names(value)


class PushRules(BaseModel):
    token_prefix: str = Field(
        default=PushConstants.TOKEN_PREFIX,
        min_length=1,
        description="Prefix every relay token carries",
    )


class TargetDefaults(BaseModel):
    tracking_mode: TrackingMode = TrackingMode(TargetConstants.DEFAULT_TRACKING_MODE)
    target_mode: TargetMode = TargetMode(TargetConstants.DEFAULT_TARGET_MODE)
    monthly_target: int = Field(default=TargetConstants.DEFAULT_MONTHLY_TARGET, gt=0)


class KindRules(BaseModel):
    """Conjunctive rule set for one reminder kind."""
    tracking_mode: Optional[TrackingMode] = Field(
        default=None,
        description="Mode the kind applies to; None means any mode",
    )
    require_push_token: bool = True
    skip_if_logged: bool = False
    skip_weekends: bool = False
    skip_holidays: bool = False
    require_geofence_trigger: bool = False
    send_days: Optional[List[str]] = Field(
        default=None,
        description="Local weekdays the kind may be sent on; None means every day",
    )
    slots: Optional[List[str]] = Field(
        default=None,
        description="Template slots a scheduled run may request; None means no slot",
    )

    @field_validator("send_days")
    @classmethod
    def _days(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return None if value is None else _validate_day_names(value)


def _default_kinds() -> Dict[ReminderKind, KindRules]:
    return {
        ReminderKind.MANUAL_REMINDER: KindRules(
            tracking_mode=TrackingMode.MANUAL,
            skip_if_logged=True,
            skip_weekends=True,
            skip_holidays=True,
            slots=["10am", "1pm", "4pm"],
        ),
        ReminderKind.AUTO_REMINDER: KindRules(
            tracking_mode=TrackingMode.AUTO,
            skip_if_logged=True,
            skip_weekends=True,
            skip_holidays=True,
            slots=["6pm"],
        ),
        ReminderKind.GEOFENCE_CONFIRMATION: KindRules(
            tracking_mode=TrackingMode.AUTO,
            skip_if_logged=True,
            require_geofence_trigger=True,
        ),
        ReminderKind.WEEKLY_SUMMARY: KindRules(send_days=["monday"]),
        ReminderKind.TEST_NOTIFICATION: KindRules(),
    }


class ReminderRules(BaseModel):
    """Complete rule set. Defaults reproduce the production schedule."""
    metadata: RulesMetadata = Field(default_factory=RulesMetadata)
    calendar: CalendarRules = Field(default_factory=CalendarRules)
    push: PushRules = Field(default_factory=PushRules)
    targets: TargetDefaults = Field(default_factory=TargetDefaults)
    kinds: Dict[ReminderKind, KindRules] = Field(default_factory=_default_kinds)


# =============================================================================
# RESULTS
# =============================================================================

class EligibilityResult(BaseModel):
    """Tagged outcome of evaluating one record for one reminder kind."""
    user_id: str
    kind: ReminderKind
    today: str = Field(..., description="Reference-local date the rules were checked against")
    decision: EligibilityDecision
    failed_rules: FrozenSet[FailedRule] = Field(default_factory=frozenset)
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_eligible(self) -> bool:
        return self.decision == EligibilityDecision.ELIGIBLE

    @classmethod
    def eligible(cls, user_id: str, kind: ReminderKind, today: str) -> "EligibilityResult":
        return cls(user_id=user_id, kind=kind, today=today, decision=EligibilityDecision.ELIGIBLE)

    @classmethod
    def not_eligible(
        cls,
        user_id: str,
        kind: ReminderKind,
        today: str,
        failed_rules: FrozenSet[FailedRule],
    ) -> "EligibilityResult":
        return cls(
            user_id=user_id,
            kind=kind,
            today=today,
            decision=EligibilityDecision.NOT_ELIGIBLE,
            failed_rules=frozenset(failed_rules),
        )


@dataclass
class RecordFailure:
    """A record that could not be evaluated."""
    user_id: str
    error_code: str
    message: str


@dataclass
class SnapshotEvaluation:
    """Evaluation of a whole snapshot for one kind at one instant."""
    kind: ReminderKind
    today: str
    eligible: List[UserRecord] = field(default_factory=list)
    results: List[EligibilityResult] = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results) + len(self.failures)

    @property
    def skipped(self) -> Counter:
        """Count of not-eligible records per failed rule.

        A record failing several rules is counted under each of them.
        """
        counts: Counter = Counter()
        for result in self.results:
            if not result.is_eligible:
                counts.update(rule.value for rule in result.failed_rules)
        return counts

    @property
    def skipped_records(self) -> int:
        return sum(1 for r in self.results if not r.is_eligible)
