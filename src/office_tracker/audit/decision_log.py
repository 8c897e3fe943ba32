"""Decision audit log - append-only JSONL, one file per reference-local day.

Lets an operator answer "why did this user not get a reminder on date X"
after the run is gone.
"""

import fcntl
import json
import logging
import os
import threading
from pathlib import Path
from typing import Generator, List, Optional, Union

from office_tracker.audit.schemas import AuditEventType, DecisionEntry
from office_tracker.dispatch.schemas import DispatchRecord
from office_tracker.eligibility.schemas import EligibilityResult, RecordFailure

logger = logging.getLogger(__name__)


class DecisionAuditLog:
    """Thread-safe JSONL writer and reader for decision entries."""
    
    def __init__(
        self,
        log_dir: Union[str, Path],
        log_filename_pattern: str = "decisions_{date}.jsonl",
        fsync_on_write: bool = False,
    ):
        """Initialize the log.
        
        Args:
            log_dir: Directory for log files; created if missing.
            log_filename_pattern: Pattern for log filename. {date} is replaced.
            fsync_on_write: Whether to fsync after each write.
        """
        self.log_dir = Path(log_dir)
        self.log_filename_pattern = log_filename_pattern
        self.fsync_on_write = fsync_on_write
        self._lock = threading.Lock()
        self.log_dir.mkdir(parents=True, exist_ok=True)
    
    def _log_path(self, date: str) -> Path:
        return self.log_dir / self.log_filename_pattern.replace("{date}", date)
    
    def append(self, entry: DecisionEntry) -> DecisionEntry:
        """Append an entry to the file for its ``today`` date.
        
        Raises:
            IOError: If the write fails
        """
        line = entry.to_jsonl() + "\n"
        with self._lock:
            fd = os.open(
                str(self._log_path(entry.today)),
                os.O_WRONLY | os.O_CREAT | os.O_APPEND,
                0o600,
            )
            try:
                # Exclusive lock for writers in other processes
                fcntl.flock(fd, fcntl.LOCK_EX)
                try:
                    os.write(fd, line.encode("utf-8"))
                    if self.fsync_on_write:
                        os.fsync(fd)
                finally:
                    fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)
        return entry
    
    def record_evaluation(
        self,
        result: EligibilityResult,
        run_id: Optional[str] = None,
        rules_version: Optional[str] = None,
        dry_run: bool = False,
    ) -> DecisionEntry:
        return self.append(DecisionEntry(
            event_type=AuditEventType.ELIGIBILITY_EVALUATED,
            run_id=run_id,
            user_id=result.user_id,
            kind=result.kind.value,
            today=result.today,
            eligible=result.is_eligible,
            failed_rules=sorted(rule.value for rule in result.failed_rules),
            rules_version=rules_version,
            dry_run=dry_run,
        ))
    
    def record_failure(
        self,
        failure: RecordFailure,
        kind: str,
        today: str,
        run_id: Optional[str] = None,
    ) -> DecisionEntry:
        return self.append(DecisionEntry(
            event_type=AuditEventType.RECORD_FAILED,
            run_id=run_id,
            user_id=failure.user_id,
            kind=kind,
            today=today,
            reason=failure.message,
            metadata={"error_code": failure.error_code},
        ))
    
    def record_dispatch(
        self,
        record: DispatchRecord,
        today: str,
        run_id: Optional[str] = None,
    ) -> DecisionEntry:
        return self.append(DecisionEntry(
            event_type=AuditEventType.NOTIFICATION_DISPATCHED,
            run_id=run_id,
            user_id=record.user_id,
            kind=record.kind.value,
            today=today,
            outcome=record.outcome.status.value,
            reason=record.outcome.reason,
            metadata={"ticket_id": record.outcome.ticket_id} if record.outcome.ticket_id else {},
        ))
    
    def record_maintenance(
        self,
        operation: str,
        user_id: str,
        today: str,
        dry_run: bool = False,
        run_id: Optional[str] = None,
    ) -> DecisionEntry:
        return self.append(DecisionEntry(
            event_type=AuditEventType.MAINTENANCE_APPLIED,
            run_id=run_id,
            user_id=user_id,
            kind=operation,
            today=today,
            dry_run=dry_run,
        ))
    
    def read_entries(
        self,
        date: str,
        user_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
    ) -> Generator[DecisionEntry, None, None]:
        """Yield the entries logged for ``date``, optionally filtered.
        
        Malformed lines are skipped with a warning.
        """
        log_path = self._log_path(date)
        if not log_path.exists():
            return
        
        with open(log_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = DecisionEntry.from_jsonl(line)
                except (json.JSONDecodeError, ValueError) as e:
                    logger.warning(f"Skipped malformed decision entry: {e}")
                    continue
                
                if user_id and entry.user_id != user_id:
                    continue
                if event_type and entry.event_type != event_type:
                    continue
                yield entry
    
    def get_log_files(self) -> List[Path]:
        return sorted(self.log_dir.glob("*.jsonl"))
