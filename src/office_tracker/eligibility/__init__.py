"""Eligibility - conjunctive reminder rules evaluated per record."""

from office_tracker.eligibility.engine import EligibilityEngine, resolve_kind
from office_tracker.eligibility.schemas import (
    EligibilityDecision,
    EligibilityResult,
    FailedRule,
    KindRules,
    RecordFailure,
    ReminderRules,
    SnapshotEvaluation,
)

__all__ = [
    "EligibilityEngine",
    "resolve_kind",
    "EligibilityDecision",
    "EligibilityResult",
    "FailedRule",
    "KindRules",
    "RecordFailure",
    "ReminderRules",
    "SnapshotEvaluation",
]
