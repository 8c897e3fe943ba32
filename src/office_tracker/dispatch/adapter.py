"""Notification dispatch adapter - builds payloads and classifies relay answers.

At most one submission per call. Nothing here retries: a caller wanting
at-least-once delivery retries ``TRANSPORT_FAILURE`` outcomes itself, and
never retries ``RELAY_REJECTED`` ones without a fresh token.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Union

from office_tracker.accounting.monthly_target import summarize_for, summary_message
from office_tracker.common.constants import TargetConstants
from office_tracker.common.exceptions import ConfigurationError, PushTransportError
from office_tracker.common.logging import short_id
from office_tracker.core.clock import ReferenceClock
from office_tracker.core.types import ReminderKind, TrackingMode
from office_tracker.data.schemas.user_record import UserRecord
from office_tracker.dispatch import templates
from office_tracker.dispatch.relay import PushRelayClient
from office_tracker.dispatch.schemas import DeliveryOutcome, DispatchRecord, PushMessage
from office_tracker.eligibility.engine import resolve_kind

logger = logging.getLogger(__name__)


def resolve_slot(kind: ReminderKind, slot: Optional[str]) -> Optional[str]:
    """Template slot for a scheduled reminder kind.

    Raises:
        ConfigurationError: If the slot has no template for the kind
    """
    slots = templates.REMINDER_TEMPLATES.get(kind.value)
    if slots is None:
        return None
    resolved = slot or templates.DEFAULT_SLOTS[kind.value]
    if resolved not in slots:
        raise ConfigurationError(
            f"No {kind.value} template for slot {resolved!r}",
            details={"known_slots": sorted(slots)},
        )
    return resolved


class NotificationDispatchAdapter:
    """Turns an eligible record into a push message and submits it."""

    def __init__(
        self,
        relay: PushRelayClient,
        clock: Optional[ReferenceClock] = None,
        default_target: Union[int, float] = TargetConstants.DEFAULT_MONTHLY_TARGET,
    ):
        self.relay = relay
        self.clock = clock or ReferenceClock()
        self.default_target = default_target

    def build_message(
        self,
        record: UserRecord,
        kind: Union[ReminderKind, str],
        now: datetime,
        slot: Optional[str] = None,
    ) -> PushMessage:
        """Build the relay payload for one record.

        Raises:
            ConfigurationError: Unknown kind or slot
            ValueError: The record carries no push token
        """
        kind = resolve_kind(kind)
        if not record.push_token:
            raise ValueError(f"Record {short_id(record.user_id)} has no push token")

        if kind in (ReminderKind.MANUAL_REMINDER, ReminderKind.AUTO_REMINDER):
            resolved_slot = resolve_slot(kind, slot)
            template = templates.REMINDER_TEMPLATES[kind.value][resolved_slot]
            return PushMessage(
                to=record.push_token,
                title=template["title"],
                body=template["body"],
                data={"type": kind.value, "time": template["time"], "action": "open_app"},
            )

        if kind == ReminderKind.GEOFENCE_CONFIRMATION:
            return PushMessage(
                to=record.push_token,
                title=templates.GEOFENCE_TEMPLATE["title"],
                body=templates.GEOFENCE_TEMPLATE["body"],
                data={
                    "type": "location_confirmation",
                    "date": self.clock.today_key(now),
                    "userId": record.user_id,
                    "autoLog": "office",
                    "trackingMode": TrackingMode.AUTO.value,
                },
                category_id=templates.ATTENDANCE_CATEGORY,
            )

        if kind == ReminderKind.WEEKLY_SUMMARY:
            summary = summarize_for(record, now, self.clock, default_target=self.default_target)
            day = self.clock.weekday_name(now)
            return PushMessage(
                to=record.push_token,
                title=templates.weekly_summary_title(day),
                body=summary_message(summary),
                data={
                    "type": kind.value,
                    "day": day.capitalize(),
                    "officeCount": summary.office_days_completed,
                    "daysRemaining": summary.days_remaining,
                    "action": "open_stats",
                },
            )

        # Test notification
        return PushMessage(
            to=record.push_token,
            title=templates.TEST_TEMPLATE["title"],
            body=templates.TEST_TEMPLATE["body"],
            data={"type": "test", "timestamp": str(int(self.clock.localize(now).timestamp() * 1000))},
        )

    def dispatch(
        self,
        record: UserRecord,
        kind: Union[ReminderKind, str],
        now: datetime,
        slot: Optional[str] = None,
    ) -> DispatchRecord:
        """Submit one message and classify the answer.

        Transport errors become a ``TRANSPORT_FAILURE`` outcome; they are
        never raised from here.
        """
        kind = resolve_kind(kind)
        message = self.build_message(record, kind, now, slot)

        try:
            ticket = self.relay.send(message)
        except PushTransportError as e:
            logger.warning(f"Transport failure for {short_id(record.user_id)}: {e.message}")
            outcome = DeliveryOutcome.transport_failure(e.message, e.details)
        else:
            outcome = DeliveryOutcome.from_ticket(ticket)
            if not outcome.delivered:
                logger.info(f"Relay rejected {short_id(record.user_id)}: {outcome.reason}")

        return DispatchRecord(record.user_id, kind, outcome, push_token=message.to)

    def dispatch_batch(
        self,
        records: Sequence[UserRecord],
        kind: Union[ReminderKind, str],
        now: datetime,
        slot: Optional[str] = None,
    ) -> List[DispatchRecord]:
        """Submit many messages in relay-sized chunks.

        A failed chunk marks only its own recipients as transport failures.
        Results are in the order of ``records``.
        """
        kind = resolve_kind(kind)
        messages = [self.build_message(r, kind, now, slot) for r in records]
        results: List[DispatchRecord] = []

        chunk_size = self.relay.chunk_size
        for start in range(0, len(messages), chunk_size):
            chunk_records = records[start:start + chunk_size]
            chunk_messages = messages[start:start + chunk_size]
            try:
                tickets = self.relay.send_batch(chunk_messages)
                outcomes = [DeliveryOutcome.from_ticket(t) for t in tickets]
            except PushTransportError as e:
                logger.warning(
                    f"Transport failure for chunk of {len(chunk_messages)} at {start}: {e.message}"
                )
                outcomes = [DeliveryOutcome.transport_failure(e.message, e.details)] * len(chunk_messages)

            for record, message, outcome in zip(chunk_records, chunk_messages, outcomes):
                results.append(DispatchRecord(record.user_id, kind, outcome, push_token=message.to))

        return results
