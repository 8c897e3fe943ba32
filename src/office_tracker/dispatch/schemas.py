"""Dispatch schemas - relay payloads and classified delivery outcomes."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from office_tracker.common.constants import PushConstants
from office_tracker.core.types import ReminderKind


class PushMessage(BaseModel):
    """One message as the push relay expects it."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    to: str = Field(..., min_length=1, description="Recipient push token")
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    sound: str = PushConstants.DEFAULT_SOUND
    priority: str = PushConstants.DEFAULT_PRIORITY
    category_id: Optional[str] = Field(default=None, alias="categoryId")

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the relay; ``categoryId`` only when set."""
        return self.model_dump(by_alias=True, exclude_none=True)


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    RELAY_REJECTED = "relay_rejected"
    TRANSPORT_FAILURE = "transport_failure"


class DeliveryOutcome(BaseModel):
    """Classified result of one submission.

    ``RELAY_REJECTED`` is final for the token it names. ``TRANSPORT_FAILURE``
    never reached the relay's decision and may be retried by the caller.
    """
    model_config = ConfigDict(frozen=True)

    status: DeliveryStatus
    reason: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ticket_id: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    @property
    def retryable(self) -> bool:
        return self.status == DeliveryStatus.TRANSPORT_FAILURE

    @property
    def token_invalid(self) -> bool:
        """Relay reported the token as no longer registered."""
        if self.status != DeliveryStatus.RELAY_REJECTED:
            return False
        return PushConstants.DEVICE_NOT_REGISTERED in (
            self.reason,
            self.details.get("error"),
        )

    @classmethod
    def from_ticket(cls, ticket: Dict[str, Any]) -> "DeliveryOutcome":
        """Classify a relay ticket ``{status, id?, message?, details?}``."""
        details = ticket.get("details") or {}
        if not isinstance(details, dict):
            details = {"raw": details}

        if ticket.get("status") == "ok":
            return cls(status=DeliveryStatus.DELIVERED, ticket_id=ticket.get("id"))

        # The error code lives in details.error; message is prose
        reason = details.get("error") or ticket.get("message") or "UnknownRelayError"
        if ticket.get("message"):
            details = {**details, "message": ticket["message"]}
        return cls(status=DeliveryStatus.RELAY_REJECTED, reason=reason, details=details)

    @classmethod
    def transport_failure(cls, reason: str, details: Optional[Dict[str, Any]] = None) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.TRANSPORT_FAILURE, reason=reason, details=details or {})


@dataclass(frozen=True)
class DispatchRecord:
    """Outcome of dispatching one kind to one record.

    ``push_token`` is the token the message went to, so a later token
    cleanup only clears a token that has not been refreshed since.
    """
    user_id: str
    kind: ReminderKind
    outcome: DeliveryOutcome
    push_token: Optional[str] = None
