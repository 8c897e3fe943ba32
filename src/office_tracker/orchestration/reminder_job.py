"""Reminder job - one snapshot, one evaluation pass, bounded dispatch fan-out."""

import logging
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from office_tracker.audit.decision_log import DecisionAuditLog
from office_tracker.common.constants import DispatchConstants
from office_tracker.common.exceptions import ConfigurationError
from office_tracker.common.logging import short_id
from office_tracker.core.types import ReminderKind
from office_tracker.data.schemas.user_record import UserRecord
from office_tracker.dispatch.adapter import NotificationDispatchAdapter, resolve_slot
from office_tracker.dispatch.schemas import DeliveryStatus, DispatchRecord
from office_tracker.eligibility.engine import EligibilityEngine, resolve_kind
from office_tracker.eligibility.schemas import RecordFailure, SnapshotEvaluation
from office_tracker.monitoring.metrics import RunMetricsCollector
from office_tracker.store.realtime_db import RealtimeDatabaseClient

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """What one run evaluated, sent and skipped."""
    run_id: str
    kind: ReminderKind
    today: str
    dry_run: bool = False
    slot: Optional[str] = None
    total: int = 0
    eligible: int = 0
    skipped: Counter = field(default_factory=Counter)
    skipped_records: int = 0
    failures: List[RecordFailure] = field(default_factory=list)
    eligible_user_ids: List[str] = field(default_factory=list)
    dispatch_records: List[DispatchRecord] = field(default_factory=list)
    duration_ms: float = 0.0

    def _with_status(self, status: DeliveryStatus) -> List[str]:
        return [r.user_id for r in self.dispatch_records if r.outcome.status == status]

    @property
    def sent(self) -> int:
        return len(self.dispatch_records)

    @property
    def delivered(self) -> int:
        return len(self._with_status(DeliveryStatus.DELIVERED))

    @property
    def rejected_user_ids(self) -> List[str]:
        return self._with_status(DeliveryStatus.RELAY_REJECTED)

    @property
    def transport_failed_user_ids(self) -> List[str]:
        return self._with_status(DeliveryStatus.TRANSPORT_FAILURE)

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "eligible": self.eligible,
            "skipped": self.skipped_records,
            "failed": len(self.failures),
            "sent": self.sent,
            "delivered": self.delivered,
            "rejected": len(self.rejected_user_ids),
            "transport_failed": len(self.transport_failed_user_ids),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "run_id": self.run_id,
            "kind": self.kind.value,
            "today": self.today,
            "slot": self.slot,
            "dry_run": self.dry_run,
            "counts": self.counts,
            "skipped": dict(self.skipped),
            "failures": [
                {"user_id": f.user_id, "error_code": f.error_code, "message": f.message}
                for f in self.failures
            ],
            "rejected": {
                r.user_id: r.outcome.reason
                for r in self.dispatch_records
                if r.outcome.status == DeliveryStatus.RELAY_REJECTED
            },
            "transport_failed_user_ids": self.transport_failed_user_ids,
            "duration_ms": round(self.duration_ms, 1),
        }
        if self.dry_run:
            data["would_send"] = list(self.eligible_user_ids)
        return data


class ReminderJob:
    """Runs one reminder kind over the whole fleet.

    Only ``ConfigurationError`` and record store read failures end a run.
    Everything that goes wrong for a single record is reported in the
    summary and the run carries on.
    """

    def __init__(
        self,
        store: RealtimeDatabaseClient,
        engine: EligibilityEngine,
        adapter: NotificationDispatchAdapter,
        max_concurrency: int = DispatchConstants.DEFAULT_MAX_CONCURRENCY,
        metrics: Optional[RunMetricsCollector] = None,
        audit: Optional[DecisionAuditLog] = None,
    ):
        if max_concurrency < 1:
            raise ConfigurationError(
                "max_concurrency must be at least 1",
                details={"max_concurrency": max_concurrency},
            )
        self.store = store
        self.engine = engine
        self.adapter = adapter
        self.max_concurrency = max_concurrency
        self.metrics = metrics
        self.audit = audit

    def _resolve_slot(self, kind: ReminderKind, slot: Optional[str]) -> Optional[str]:
        allowed = self.engine.rules_for(kind).slots
        if allowed is None:
            if slot is not None:
                raise ConfigurationError(f"{kind.value} does not take a slot, got {slot!r}")
            return None
        resolved = resolve_slot(kind, slot)
        if resolved not in allowed:
            raise ConfigurationError(
                f"Slot {resolved!r} is not enabled for {kind.value}",
                details={"enabled_slots": allowed},
            )
        return resolved

    def run(
        self,
        kind: Union[ReminderKind, str],
        now: Optional[datetime] = None,
        slot: Optional[str] = None,
        dry_run: bool = False,
    ) -> RunSummary:
        """Evaluate every record for ``kind`` and dispatch to the eligible ones.

        Args:
            kind: Reminder kind
            now: Instant of the run; defaults to the current time
            slot: Template slot for scheduled reminders (e.g. "1pm")
            dry_run: Evaluate and log intended sends without dispatching

        Returns:
            RunSummary

        Raises:
            ConfigurationError: Unknown kind or slot
            RecordStoreError: The snapshot could not be read
        """
        started = time.perf_counter()
        kind = resolve_kind(kind)
        slot = self._resolve_slot(kind, slot)
        now = now or self.engine.clock.utcnow()
        run_id = f"run_{uuid4().hex[:12]}"

        users = self.store.fetch_users()
        evaluation = self.engine.evaluate_snapshot(users, kind, now)
        summary = RunSummary(
            run_id=run_id,
            kind=kind,
            today=evaluation.today,
            dry_run=dry_run,
            slot=slot,
            total=evaluation.total,
            eligible=len(evaluation.eligible),
            skipped=evaluation.skipped,
            skipped_records=evaluation.skipped_records,
            failures=list(evaluation.failures),
            eligible_user_ids=[record.user_id for record in evaluation.eligible],
        )
        self._audit_evaluation(evaluation, run_id, dry_run)

        if dry_run:
            for record in evaluation.eligible:
                logger.info(f"[DRY RUN] Would send {kind.value} to {short_id(record.user_id)}")
        elif evaluation.eligible:
            self._dispatch_all(evaluation.eligible, kind, now, slot, summary)

        summary.duration_ms = (time.perf_counter() - started) * 1000
        self._publish_metrics(summary)

        logger.info(
            f"{kind.value} run {run_id} finished: "
            + ", ".join(f"{k}={v}" for k, v in summary.counts.items())
        )
        return summary

    def _dispatch_all(
        self,
        records: List[UserRecord],
        kind: ReminderKind,
        now: datetime,
        slot: Optional[str],
        summary: RunSummary,
    ) -> None:
        workers = min(self.max_concurrency, len(records))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="DispatchWorker") as executor:
            futures = {
                executor.submit(self.adapter.dispatch, record, kind, now, slot): record.user_id
                for record in records
            }
            for future in as_completed(futures):
                user_id = futures[future]
                try:
                    dispatch_record = future.result()
                except Exception as e:
                    logger.warning(f"Dispatch failed for {short_id(user_id)}: {type(e).__name__}: {e}")
                    failure = RecordFailure(user_id, type(e).__name__, str(e))
                    summary.failures.append(failure)
                    self._audit_call("record_failure", failure, kind.value, summary.today, summary.run_id)
                    continue

                summary.dispatch_records.append(dispatch_record)
                self._audit_call("record_dispatch", dispatch_record, summary.today, summary.run_id)

    def _audit_evaluation(self, evaluation: SnapshotEvaluation, run_id: str, dry_run: bool) -> None:
        if self.audit is None:
            return
        for result in evaluation.results:
            self._audit_call("record_evaluation", result, run_id, self.engine.rules_version, dry_run)
        for failure in evaluation.failures:
            self._audit_call("record_failure", failure, evaluation.kind.value, evaluation.today, run_id)

    def _audit_call(self, method_name: str, *args) -> None:
        if self.audit is None:
            return
        try:
            getattr(self.audit, method_name)(*args)
        except OSError as e:
            logger.error(f"Decision log write failed: {e}")

    def _publish_metrics(self, summary: RunSummary) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record_run(
                summary.kind.value,
                summary.counts,
                summary.skipped,
                summary.duration_ms,
                dry_run=summary.dry_run,
            )
            self.metrics.flush()
        except IOError as e:
            logger.error(f"Run metrics not published: {e}")
