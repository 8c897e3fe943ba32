"""Dispatch - push payloads, relay client, delivery classification."""

from office_tracker.dispatch.adapter import NotificationDispatchAdapter, resolve_slot
from office_tracker.dispatch.relay import PushRelayClient
from office_tracker.dispatch.schemas import (
    DeliveryOutcome,
    DeliveryStatus,
    DispatchRecord,
    PushMessage,
)

__all__ = [
    "NotificationDispatchAdapter",
    "resolve_slot",
    "PushRelayClient",
    "DeliveryOutcome",
    "DeliveryStatus",
    "DispatchRecord",
    "PushMessage",
]
