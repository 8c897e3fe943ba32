"""Decision audit log."""

from office_tracker.audit.decision_log import DecisionAuditLog
from office_tracker.audit.schemas import AuditEventType, DecisionEntry

__all__ = ["DecisionAuditLog", "AuditEventType", "DecisionEntry"]
