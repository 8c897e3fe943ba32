"""Audit schemas - one line per eligibility decision or dispatch outcome."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    ELIGIBILITY_EVALUATED = "eligibility_evaluated"
    RECORD_FAILED = "record_failed"
    NOTIFICATION_DISPATCHED = "notification_dispatched"
    MAINTENANCE_APPLIED = "maintenance_applied"


class DecisionEntry(BaseModel):
    """A single immutable decision log entry."""
    entry_id: str = Field(
        default_factory=lambda: f"dec_{uuid4().hex[:12]}",
        description="Unique entry identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the entry was created"
    )
    event_type: AuditEventType
    
    run_id: Optional[str] = Field(default=None, description="Run the entry belongs to")
    user_id: Optional[str] = None
    kind: Optional[str] = Field(default=None, description="Reminder kind or maintenance operation")
    today: str = Field(..., description="Reference-local date the decision was made for")
    
    # Evaluation
    eligible: Optional[bool] = None
    failed_rules: List[str] = Field(default_factory=list)
    rules_version: Optional[str] = None
    
    # Dispatch
    outcome: Optional[str] = None
    reason: Optional[str] = None
    
    dry_run: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)
    
    def to_jsonl(self) -> str:
        return json.dumps(self.model_dump(mode="json"), default=str, ensure_ascii=False)
    
    @classmethod
    def from_jsonl(cls, line: str) -> "DecisionEntry":
        return cls.model_validate(json.loads(line))
