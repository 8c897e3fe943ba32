"""Maintenance jobs - the only operations that write user records.

Both are dry-run aware and report per-record write failures without
stopping. Reading the snapshot is still fatal when it fails.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from office_tracker.audit.decision_log import DecisionAuditLog
from office_tracker.common.constants import StoreConstants
from office_tracker.common.exceptions import RecordStoreError
from office_tracker.common.logging import short_id
from office_tracker.core.clock import ReferenceClock
from office_tracker.dispatch.schemas import DispatchRecord
from office_tracker.store.realtime_db import RealtimeDatabaseClient

logger = logging.getLogger(__name__)

RESET_NEAR_OFFICE = "reset_near_office"
CLEAR_REJECTED_TOKENS = "clear_rejected_tokens"


@dataclass
class MaintenanceResult:
    operation: str
    dry_run: bool
    matched: List[str] = field(default_factory=list)
    applied: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "dry_run": self.dry_run,
            "matched": len(self.matched),
            "applied": len(self.applied),
            "errors": dict(self.errors),
        }


def _user_path(user_id: str, child: Optional[str] = None) -> str:
    path = f"{StoreConstants.USERS_PATH}/{user_id}"
    return f"{path}/{child}" if child else path


def _apply(
    store: RealtimeDatabaseClient,
    result: MaintenanceResult,
    user_id: str,
    path: str,
    fields: Dict[str, Any],
    today: str,
    audit: Optional[DecisionAuditLog],
) -> None:
    result.matched.append(user_id)
    if result.dry_run:
        logger.info(f"[DRY RUN] {result.operation}: would update /{path} with {fields}")
        return

    try:
        store.update_fields(path, fields)
    except RecordStoreError as e:
        logger.error(f"{result.operation} failed for {short_id(user_id)}: {e.message}")
        result.errors[user_id] = e.message
        return

    result.applied.append(user_id)
    if audit is not None:
        try:
            audit.record_maintenance(result.operation, user_id, today, dry_run=False)
        except OSError as e:
            logger.error(f"Decision log write failed: {e}")


def reset_near_office_flags(
    store: RealtimeDatabaseClient,
    now: datetime,
    dry_run: bool = False,
    clock: Optional[ReferenceClock] = None,
    audit: Optional[DecisionAuditLog] = None,
) -> MaintenanceResult:
    """Clear every raised geofence marker, run once per reference-local midnight.

    A cleared marker reads ``{detected: false, timestamp: <now ms>}`` with
    its date removed.
    """
    clock = clock or ReferenceClock()
    today = clock.today_key(now)
    timestamp_ms = int(clock.localize(now).timestamp() * 1000)
    result = MaintenanceResult(RESET_NEAR_OFFICE, dry_run)

    for user_id, raw in store.fetch_users().items():
        marker = raw.get("nearOffice") if isinstance(raw, dict) else None
        if not isinstance(marker, dict) or marker.get("detected") is not True:
            continue
        _apply(
            store,
            result,
            user_id,
            _user_path(user_id, "nearOffice"),
            {"detected": False, "timestamp": timestamp_ms, "date": None},
            today,
            audit,
        )

    logger.info(
        f"{RESET_NEAR_OFFICE}: matched={len(result.matched)}, applied={len(result.applied)}, "
        f"errors={len(result.errors)}, dry_run={dry_run}"
    )
    return result


def clear_rejected_tokens(
    store: RealtimeDatabaseClient,
    dispatch_records: Iterable[DispatchRecord],
    dry_run: bool = False,
    now: Optional[datetime] = None,
    clock: Optional[ReferenceClock] = None,
    audit: Optional[DecisionAuditLog] = None,
) -> MaintenanceResult:
    """Remove push tokens the relay reported as no longer registered.

    A token is only cleared while the record still holds the exact token
    that was rejected; a token refreshed since the run is left alone.
    """
    clock = clock or ReferenceClock()
    today = clock.today_key(now)
    result = MaintenanceResult(CLEAR_REJECTED_TOKENS, dry_run)

    for record in dispatch_records:
        if not record.outcome.token_invalid or not record.push_token:
            continue
        try:
            current = store.get(_user_path(record.user_id, "fcmToken"))
        except RecordStoreError as e:
            result.errors[record.user_id] = e.message
            continue
        if current != record.push_token:
            logger.info(f"Token for {short_id(record.user_id)} changed since rejection; keeping it")
            continue
        _apply(
            store,
            result,
            record.user_id,
            _user_path(record.user_id),
            {"fcmToken": None},
            today,
            audit,
        )

    logger.info(
        f"{CLEAR_REJECTED_TOKENS}: matched={len(result.matched)}, applied={len(result.applied)}, "
        f"errors={len(result.errors)}, dry_run={dry_run}"
    )
    return result
