"""Eligibility Engine - decides whether a reminder should be sent now."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Set, Union

import yaml
from pydantic import ValidationError

from office_tracker.common.exceptions import ConfigurationError, MalformedRecordError
from office_tracker.common.logging import short_id
from office_tracker.core.clock import ReferenceClock
from office_tracker.core.types import ReminderKind
from office_tracker.data.accessors import (
    effective_tracking_mode,
    geofence_triggered_on,
    has_valid_push_token,
    is_holiday,
    logged_on,
    parse_user_record,
)
from office_tracker.data.schemas.user_record import UserRecord
from office_tracker.eligibility.schemas import (
    EligibilityResult,
    FailedRule,
    KindRules,
    RecordFailure,
    ReminderRules,
    SnapshotEvaluation,
)

logger = logging.getLogger(__name__)


def resolve_kind(kind: Union[ReminderKind, str]) -> ReminderKind:
    """Turn a kind name into a ReminderKind.

    Raises:
        ConfigurationError: If the name is not a known kind
    """
    if isinstance(kind, ReminderKind):
        return kind
    try:
        return ReminderKind(kind)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown reminder kind: {kind!r}",
            details={"known_kinds": [k.value for k in ReminderKind]},
        ) from e


class EligibilityEngine:
    """Evaluates reminder rules for user records.

    Pure with respect to the records: nothing is written, and the same
    ``(record, kind, now)`` always yields the same result.
    """

    # Default rules file path
    DEFAULT_RULES_FILE = Path(__file__).parent.parent.parent.parent / "config" / "reminder_rules.yaml"

    def __init__(
        self,
        rules_file: Optional[str] = None,
        rules: Optional[ReminderRules] = None,
    ):
        """Initialize the engine.

        Args:
            rules_file: Path to reminder_rules.yaml. Uses default if not provided.
            rules: Pre-built rules; takes precedence over any file.
        """
        self.rules_file = Path(rules_file) if rules_file else self.DEFAULT_RULES_FILE
        self.rules: ReminderRules = rules if rules is not None else self._load_rules()
        self.clock = ReferenceClock(
            self.rules.calendar.reference_timezone,
            tuple(self.rules.calendar.weekend_days),
        )

    def _load_rules(self) -> ReminderRules:
        """Load and validate rules from YAML file."""
        if not self.rules_file.exists():
            raise ConfigurationError(
                f"Rules file not found: {self.rules_file}",
                details={"rules_file": str(self.rules_file)},
            )

        with open(self.rules_file, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        try:
            return ReminderRules.model_validate(raw_config)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid rules file {self.rules_file}: {e.error_count()} error(s)",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    def reload_rules(self) -> None:
        self.rules = self._load_rules()
        self.clock = ReferenceClock(
            self.rules.calendar.reference_timezone,
            tuple(self.rules.calendar.weekend_days),
        )

    @property
    def rules_version(self) -> str:
        """Get current rules version."""
        return self.rules.metadata.version

    def rules_for(self, kind: Union[ReminderKind, str]) -> KindRules:
        """Rule set for a kind.

        Raises:
            ConfigurationError: If the kind is unknown or has no rules
        """
        resolved = resolve_kind(kind)
        kind_rules = self.rules.kinds.get(resolved)
        if kind_rules is None:
            raise ConfigurationError(
                f"No rules configured for reminder kind {resolved.value!r}",
                details={"rules_version": self.rules_version},
            )
        return kind_rules

    def evaluate(
        self,
        record: UserRecord,
        kind: Union[ReminderKind, str],
        now: datetime,
    ) -> EligibilityResult:
        """Evaluate one record against every rule of a kind.

        All rules are checked so the failed set is complete.

        Args:
            record: Parsed user record
            kind: Reminder kind
            now: Instant of evaluation; read in the reference timezone

        Returns:
            EligibilityResult, eligible only if no rule failed
        """
        resolved = resolve_kind(kind)
        kind_rules = self.rules_for(resolved)
        today = self.clock.today_key(now)
        failed: Set[FailedRule] = set()

        if kind_rules.tracking_mode is not None:
            if effective_tracking_mode(record) != kind_rules.tracking_mode:
                failed.add(FailedRule.TRACKING_MODE_MISMATCH)

        if kind_rules.require_push_token:
            if not has_valid_push_token(record, self.rules.push.token_prefix):
                failed.add(FailedRule.NO_VALID_PUSH_TOKEN)

        if kind_rules.skip_if_logged and logged_on(record, today):
            failed.add(FailedRule.ALREADY_LOGGED)

        if kind_rules.skip_weekends and self.clock.is_weekend(now):
            failed.add(FailedRule.WEEKEND)

        if kind_rules.skip_holidays and is_holiday(record, today):
            failed.add(FailedRule.HOLIDAY)

        if kind_rules.require_geofence_trigger and not geofence_triggered_on(record, today):
            failed.add(FailedRule.NO_GEOFENCE_TRIGGER_TODAY)

        if kind_rules.send_days is not None:
            if self.clock.weekday_name(now) not in kind_rules.send_days:
                failed.add(FailedRule.NOT_WEEKLY_SEND_DAY)

        if failed:
            return EligibilityResult.not_eligible(record.user_id, resolved, today, frozenset(failed))
        return EligibilityResult.eligible(record.user_id, resolved, today)

    def evaluate_snapshot(
        self,
        users: Mapping[str, Any],
        kind: Union[ReminderKind, str],
        now: datetime,
    ) -> SnapshotEvaluation:
        """Evaluate every record of a snapshot.

        A record that cannot be parsed or evaluated is reported in
        ``failures`` and never stops the others. An unknown kind raises
        before any record is looked at.

        Args:
            users: Mapping of user id to raw record, as read from /users
            kind: Reminder kind
            now: Instant of evaluation

        Returns:
            SnapshotEvaluation
        """
        resolved = resolve_kind(kind)
        self.rules_for(resolved)
        evaluation = SnapshotEvaluation(kind=resolved, today=self.clock.today_key(now))

        for user_id, raw in (users or {}).items():
            try:
                record = parse_user_record(user_id, raw)
                result = self.evaluate(record, resolved, now)
            except MalformedRecordError as e:
                logger.warning(f"Skipping {short_id(user_id)}: {e.message}")
                evaluation.failures.append(RecordFailure(user_id, e.code, e.message))
                continue
            except (TypeError, ValueError, AttributeError) as e:
                logger.error(f"Evaluation failed for {short_id(user_id)}: {e}")
                evaluation.failures.append(RecordFailure(user_id, type(e).__name__, str(e)))
                continue

            evaluation.results.append(result)
            if result.is_eligible:
                evaluation.eligible.append(record)

        logger.info(
            f"{resolved.value} on {evaluation.today}: total={evaluation.total}, "
            f"eligible={len(evaluation.eligible)}, skipped={evaluation.skipped_records}, "
            f"failed={len(evaluation.failures)}"
        )
        return evaluation

    def explain(self, result: EligibilityResult) -> Dict[str, Any]:
        """Operator-facing explanation of a result."""
        return {
            "user_id": result.user_id,
            "kind": result.kind.value,
            "today": result.today,
            "eligible": result.is_eligible,
            "failed_rules": sorted(rule.value for rule in result.failed_rules),
            "rules_version": self.rules_version,
        }
