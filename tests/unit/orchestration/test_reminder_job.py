"""Unit tests for the reminder job."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from office_tracker.common.exceptions import ConfigurationError, RecordStoreError
from office_tracker.core.types import ReminderKind
from office_tracker.dispatch.adapter import NotificationDispatchAdapter
from office_tracker.dispatch.schemas import DeliveryStatus
from office_tracker.orchestration.reminder_job import ReminderJob


OK_TICKET = {"status": "ok", "id": "ticket-1"}
GONE_TICKET = {
    "status": "error",
    "message": "not a registered push notification recipient",
    "details": {"error": "DeviceNotRegistered"},
}


@pytest.fixture
def relay():
    relay = MagicMock()
    relay.chunk_size = 100
    relay.send.return_value = OK_TICKET
    return relay


@pytest.fixture
def store():
    store = MagicMock()
    store.fetch_users.return_value = {}
    return store


@pytest.fixture
def job(store, engine, relay, clock):
    return ReminderJob(store, engine, NotificationDispatchAdapter(relay, clock=clock), max_concurrency=2)


@pytest.fixture
def fleet(make_raw_user):
    """Five records: two eligible for a manual reminder on Tuesday 2026-01-20."""
    return {
        "iPhone_15_1768800000000_aaa": make_raw_user(fcmToken="ExponentPushToken[aaa]"),
        "Pixel_8_1768800000000_bbb": make_raw_user(fcmToken="ExponentPushToken[bbb]", platform="android"),
        "iPhone_13_1768800000000_ccc": make_raw_user(attendanceData={"2026-01-20": "office"}),
        "iPad_Air_1768800000000_ddd": make_raw_user(profile={"trackingMode": "auto"}),
        "Galaxy_S24_1768800000000_eee": "corrupted",
    }


class TestRun:
    """End-to-end run over a mocked store and relay."""
    
    def test_counts(self, job, store, relay, fleet, tuesday):
        store.fetch_users.return_value = fleet
        
        summary = job.run("manual_reminder", now=tuesday, slot="1pm")
        
        assert summary.kind == ReminderKind.MANUAL_REMINDER
        assert summary.today == "2026-01-20"
        assert summary.slot == "1pm"
        assert summary.counts == {
            "total": 5,
            "eligible": 2,
            "skipped": 2,
            "failed": 1,
            "sent": 2,
            "delivered": 2,
            "rejected": 0,
            "transport_failed": 0,
        }
        assert summary.skipped == {"alreadyLogged": 1, "trackingModeMismatch": 1}
        assert relay.send.call_count == 2
        sent_to = {c.args[0].to for c in relay.send.call_args_list}
        assert sent_to == {"ExponentPushToken[aaa]", "ExponentPushToken[bbb]"}
        store.fetch_users.assert_called_once()
    
    def test_rejections_and_transport_failures(self, job, store, relay, fleet, tuesday):
        from office_tracker.common.exceptions import PushTransportError
        store.fetch_users.return_value = fleet
        
        def answer(message):
            if message.to == "ExponentPushToken[aaa]":
                return GONE_TICKET
            raise PushTransportError("Push relay answered HTTP 503", status_code=503)
        relay.send.side_effect = answer
        
        summary = job.run(ReminderKind.MANUAL_REMINDER, now=tuesday)
        
        assert summary.rejected_user_ids == ["iPhone_15_1768800000000_aaa"]
        assert summary.transport_failed_user_ids == ["Pixel_8_1768800000000_bbb"]
        assert summary.to_dict()["rejected"] == {"iPhone_15_1768800000000_aaa": "DeviceNotRegistered"}
    
    def test_dispatch_exception_is_per_record(self, store, engine, make_raw_user, tuesday):
        adapter = MagicMock()
        adapter.dispatch.side_effect = RuntimeError("template exploded")
        store.fetch_users.return_value = {"user_1768800000000_a": make_raw_user()}
        job = ReminderJob(store, engine, adapter)
        
        summary = job.run("manual_reminder", now=tuesday)
        
        assert summary.sent == 0
        assert [f.error_code for f in summary.failures] == ["RuntimeError"]
    
    def test_dry_run_never_dispatches(self, job, store, relay, fleet, tuesday):
        store.fetch_users.return_value = fleet
        
        summary = job.run("manual_reminder", now=tuesday, dry_run=True)
        
        assert summary.dry_run
        assert summary.eligible == 2
        assert summary.sent == 0
        relay.send.assert_not_called()

    def test_dry_run_lists_intended_recipients(self, job, store, fleet, tuesday):
        store.fetch_users.return_value = fleet

        data = job.run("manual_reminder", now=tuesday, dry_run=True).to_dict()

        assert sorted(data["would_send"]) == ["Pixel_8_1768800000000_bbb", "iPhone_15_1768800000000_aaa"]

    def test_live_run_omits_intended_recipients(self, job, store, fleet, tuesday):
        store.fetch_users.return_value = fleet

        assert "would_send" not in job.run("manual_reminder", now=tuesday).to_dict()

    def test_no_eligible_records(self, job, store, relay, fleet, saturday):
        store.fetch_users.return_value = fleet
        
        summary = job.run("manual_reminder", now=saturday)
        
        assert summary.eligible == 0
        assert summary.skipped["weekend"] == 4
        relay.send.assert_not_called()
    
    def test_concurrency_is_bounded(self, store, engine, make_raw_user, tuesday):
        active = {"now": 0, "peak": 0}
        lock = threading.Lock()
        
        def slow_send(message):
            with lock:
                active["now"] += 1
                active["peak"] = max(active["peak"], active["now"])
            time.sleep(0.02)
            with lock:
                active["now"] -= 1
            return OK_TICKET
        
        relay = MagicMock()
        relay.send.side_effect = slow_send
        store.fetch_users.return_value = {
            f"Pixel_{i}_1768800000000_x": make_raw_user() for i in range(10)
        }
        job = ReminderJob(store, engine, NotificationDispatchAdapter(relay), max_concurrency=3)
        
        summary = job.run("manual_reminder", now=tuesday)
        
        assert summary.delivered == 10
        assert active["peak"] <= 3


class TestRunFailures:
    """Run-fatal conditions."""
    
    def test_unknown_kind_before_store_read(self, job, store, tuesday):
        with pytest.raises(ConfigurationError):
            job.run("nightly_digest", now=tuesday)
        store.fetch_users.assert_not_called()
    
    def test_slot_not_enabled(self, job, store, tuesday):
        with pytest.raises(ConfigurationError):
            job.run("auto_reminder", now=tuesday, slot="10am")
        store.fetch_users.assert_not_called()
    
    def test_slot_on_kind_without_slots(self, job, tuesday):
        with pytest.raises(ConfigurationError):
            job.run("weekly_summary", now=tuesday, slot="10am")
    
    def test_store_failure_is_fatal(self, job, store, tuesday):
        store.fetch_users.side_effect = RecordStoreError("GET /users answered HTTP 503")
        
        with pytest.raises(RecordStoreError):
            job.run("manual_reminder", now=tuesday)
    
    def test_invalid_concurrency(self, store, engine):
        with pytest.raises(ConfigurationError):
            ReminderJob(store, engine, MagicMock(), max_concurrency=0)


class TestRunSideChannels:
    """Metrics and decision log never break a run."""
    
    def test_metrics_published(self, store, engine, relay, fleet, tuesday):
        metrics = MagicMock()
        store.fetch_users.return_value = fleet
        job = ReminderJob(store, engine, NotificationDispatchAdapter(relay), metrics=metrics)
        
        job.run("manual_reminder", now=tuesday)
        
        kind, counts, skipped, _duration = metrics.record_run.call_args.args
        assert kind == "manual_reminder"
        assert counts["delivered"] == 2
        metrics.flush.assert_called_once()
    
    def test_metrics_failure_logged(self, store, engine, relay, fleet, tuesday):
        metrics = MagicMock()
        metrics.flush.side_effect = IOError("CloudWatch unavailable")
        store.fetch_users.return_value = fleet
        job = ReminderJob(store, engine, NotificationDispatchAdapter(relay), metrics=metrics)
        
        summary = job.run("manual_reminder", now=tuesday)
        
        assert summary.delivered == 2
    
    def test_audit_receives_every_decision(self, store, engine, relay, fleet, tuesday):
        audit = MagicMock()
        store.fetch_users.return_value = fleet
        job = ReminderJob(store, engine, NotificationDispatchAdapter(relay), audit=audit)
        
        job.run("manual_reminder", now=tuesday)
        
        assert audit.record_evaluation.call_count == 4
        assert audit.record_failure.call_count == 1
        assert audit.record_dispatch.call_count == 2
    
    def test_audit_write_error_logged(self, store, engine, relay, fleet, tuesday):
        audit = MagicMock()
        audit.record_dispatch.side_effect = OSError("disk full")
        store.fetch_users.return_value = fleet
        job = ReminderJob(store, engine, NotificationDispatchAdapter(relay), audit=audit)
        
        summary = job.run("manual_reminder", now=tuesday)
        
        assert summary.delivered == 2
        assert all(r.outcome.status == DeliveryStatus.DELIVERED for r in summary.dispatch_records)
