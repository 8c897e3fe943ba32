"""Notification Service - wires the engine, store and relay for callers.

Both the HTTP gateway and the operator CLI go through this class, so a
reminder decided over HTTP and one decided by a scheduled run follow the
same rules.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from office_tracker.accounting.monthly_target import MonthlyTargetSummary, summarize_for
from office_tracker.audit.decision_log import DecisionAuditLog
from office_tracker.common.config import Config, get_config
from office_tracker.common.exceptions import ConfigurationError, UserNotFoundError
from office_tracker.common.logging import short_id
from office_tracker.core.types import ReminderKind
from office_tracker.data.accessors import parse_user_record
from office_tracker.data.schemas.user_record import UserRecord
from office_tracker.dispatch.adapter import NotificationDispatchAdapter
from office_tracker.dispatch.relay import PushRelayClient
from office_tracker.dispatch.schemas import DispatchRecord
from office_tracker.eligibility.engine import EligibilityEngine
from office_tracker.eligibility.schemas import EligibilityResult
from office_tracker.monitoring.metrics import RunMetricsCollector
from office_tracker.orchestration.diagnostics import FleetReport, fleet_report
from office_tracker.orchestration.maintenance import (
    MaintenanceResult,
    clear_rejected_tokens,
    reset_near_office_flags,
)
from office_tracker.orchestration.reminder_job import ReminderJob, RunSummary
from office_tracker.store.realtime_db import RealtimeDatabaseClient


logger = logging.getLogger(__name__)


class NotificationService:
    """Entry point for reminder runs and single-user notifications."""
    
    def __init__(
        self,
        store: RealtimeDatabaseClient,
        engine: EligibilityEngine,
        adapter: NotificationDispatchAdapter,
        max_concurrency: int = 4,
        metrics: Optional[RunMetricsCollector] = None,
        audit: Optional[DecisionAuditLog] = None,
    ):
        self.store = store
        self.engine = engine
        self.adapter = adapter
        self.metrics = metrics
        self.audit = audit
        self.job = ReminderJob(
            store,
            engine,
            adapter,
            max_concurrency=max_concurrency,
            metrics=metrics,
            audit=audit,
        )
    
    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "NotificationService":
        """Build every component from configuration.
        
        Raises:
            ConfigurationError: No record store URL, or an invalid rules file
        """
        config = config or get_config()
        if not config.database_url:
            raise ConfigurationError("OFFICE_TRACKER_DATABASE_URL is not set")
        
        engine = EligibilityEngine(rules_file=str(config.effective_rules_file))
        store = RealtimeDatabaseClient(
            config.database_url,
            auth_token=config.database_auth_token,
            timeout=config.database_timeout,
        )
        relay = PushRelayClient(
            relay_url=config.push_relay_url,
            access_token=config.push_access_token,
            timeout=config.push_timeout,
            chunk_size=config.push_chunk_size,
        )
        adapter = NotificationDispatchAdapter(
            relay,
            clock=engine.clock,
            default_target=engine.rules.targets.monthly_target,
        )
        metrics = None
        if config.metrics_enabled:
            metrics = RunMetricsCollector(namespace=config.metrics_namespace, region=config.aws_region)
        audit = DecisionAuditLog(config.audit_log_dir) if config.audit_log_dir else None
        
        logger.info(
            f"NotificationService ready: rules={engine.rules_version}, "
            f"metrics={'on' if metrics else 'off'}, audit={'on' if audit else 'off'}"
        )
        return cls(
            store,
            engine,
            adapter,
            max_concurrency=config.max_concurrency,
            metrics=metrics,
            audit=audit,
        )
    
    def _now(self, now: Optional[datetime]) -> datetime:
        return now or self.engine.clock.utcnow()
    
    def load_user(self, user_id: str) -> UserRecord:
        """Fetch and parse one record.
        
        Raises:
            UserNotFoundError: No record under that id
            MalformedRecordError: The record cannot be parsed
            RecordStoreError: The store could not be read
        """
        raw = self.store.fetch_user(user_id)
        if raw is None:
            raise UserNotFoundError(user_id)
        return parse_user_record(user_id, raw)
    
    # =========================================================================
    # RUNS
    # =========================================================================
    
    def run(
        self,
        kind: Union[ReminderKind, str],
        now: Optional[datetime] = None,
        slot: Optional[str] = None,
        dry_run: bool = False,
    ) -> RunSummary:
        return self.job.run(kind, now=self._now(now), slot=slot, dry_run=dry_run)
    
    def notify_user(
        self,
        user_id: str,
        kind: Union[ReminderKind, str],
        now: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> Dict[str, Any]:
        """Evaluate one user for ``kind`` and dispatch when eligible.
        
        Returns:
            Dict with the eligibility result and, when sent, the outcome
        """
        now = self._now(now)
        record = self.load_user(user_id)
        result: EligibilityResult = self.engine.evaluate(record, kind, now)
        if self.audit is not None:
            try:
                self.audit.record_evaluation(result, rules_version=self.engine.rules_version, dry_run=dry_run)
            except OSError as e:
                logger.error(f"Decision log write failed: {e}")
        
        response: Dict[str, Any] = {
            "user_id": user_id,
            "kind": result.kind.value,
            "today": result.today,
            "eligible": result.is_eligible,
            "failed_rules": sorted(rule.value for rule in result.failed_rules),
            "sent": False,
            "dry_run": dry_run,
            "outcome": None,
        }
        if not result.is_eligible:
            logger.info(f"{result.kind.value} skipped for {short_id(user_id)}: {response['failed_rules']}")
            return response
        if dry_run:
            logger.info(f"[DRY RUN] Would send {result.kind.value} to {short_id(user_id)}")
            return response
        
        dispatch_record: DispatchRecord = self.adapter.dispatch(record, result.kind, now)
        if self.audit is not None:
            try:
                self.audit.record_dispatch(dispatch_record, result.today)
            except OSError as e:
                logger.error(f"Decision log write failed: {e}")
        
        response["sent"] = True
        response["outcome"] = dispatch_record.outcome.model_dump(mode="json")
        return response
    
    # =========================================================================
    # READ-ONLY REPORTS
    # =========================================================================
    
    def monthly_summary(self, user_id: str, now: Optional[datetime] = None) -> MonthlyTargetSummary:
        record = self.load_user(user_id)
        return summarize_for(
            record,
            self._now(now),
            self.engine.clock,
            default_target=self.engine.rules.targets.monthly_target,
        )
    
    def fleet_report(self, now: Optional[datetime] = None) -> FleetReport:
        return fleet_report(
            self.store.fetch_users(),
            self._now(now),
            self.engine.clock,
            token_prefix=self.engine.rules.push.token_prefix,
        )
    
    # =========================================================================
    # MAINTENANCE
    # =========================================================================
    
    def reset_near_office(self, now: Optional[datetime] = None, dry_run: bool = False) -> MaintenanceResult:
        result = reset_near_office_flags(
            self.store, self._now(now), dry_run=dry_run, clock=self.engine.clock, audit=self.audit
        )
        self._publish_maintenance(result)
        return result
    
    def clear_rejected_tokens(
        self,
        summary: RunSummary,
        now: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> MaintenanceResult:
        result = clear_rejected_tokens(
            self.store,
            summary.dispatch_records,
            dry_run=dry_run,
            now=self._now(now),
            clock=self.engine.clock,
            audit=self.audit,
        )
        self._publish_maintenance(result)
        return result
    
    def _publish_maintenance(self, result: MaintenanceResult) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record_maintenance(result.operation, len(result.applied), dry_run=result.dry_run)
            self.metrics.flush()
        except IOError as e:
            logger.error(f"Maintenance metrics not published: {e}")
    
    def shutdown(self) -> None:
        """Flush metrics and close HTTP sessions."""
        if self.metrics is not None:
            try:
                self.metrics.shutdown()
            except IOError as e:
                logger.error(f"Metrics flush on shutdown failed: {e}")
        self.store.close()
        self.adapter.relay.close()
        logger.info("NotificationService shutdown complete")
