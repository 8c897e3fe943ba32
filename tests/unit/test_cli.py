"""Tests for the operator CLI."""

import json
import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from office_tracker.accounting.monthly_target import MonthlyTargetSummary
from office_tracker.api.service import NotificationService
from office_tracker.cli import EXIT_CONFIG_ERROR, EXIT_OK, EXIT_STORE_FAILURE, build_parser, main
from office_tracker.common.config import reset_config
from office_tracker.common.exceptions import ConfigurationError, RecordStoreError, UserNotFoundError
from office_tracker.core.types import ReminderKind, TargetMode
from office_tracker.dispatch.adapter import NotificationDispatchAdapter
from office_tracker.orchestration.maintenance import MaintenanceResult
from office_tracker.orchestration.reminder_job import RunSummary


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def service():
    service = MagicMock()
    service.run.return_value = RunSummary(
        run_id="run_test", kind=ReminderKind.MANUAL_REMINDER, today="2026-01-20", total=3, eligible=1
    )
    return service


def _run(argv, service):
    return main(argv, service_factory=lambda: service)


class TestParser:
    
    def test_run_arguments(self):
        args = build_parser().parse_args(
            ["run", "--kind", "manual_reminder", "--slot", "4pm", "--now", "2026-01-20T05:00:00+00:00", "--dry-run"]
        )
        
        assert args.kind == "manual_reminder"
        assert args.slot == "4pm"
        assert args.now == datetime(2026, 1, 20, 5, 0, tzinfo=timezone.utc)
        assert args.dry_run is True
    
    def test_bad_timestamp(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "--kind", "manual_reminder", "--now", "yesterday"])
    
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    """Exit codes and output."""
    
    def test_run_prints_summary(self, service, capsys):
        code = _run(["run", "-k", "manual_reminder", "-s", "1pm", "--dry-run"], service)
        
        assert code == EXIT_OK
        service.run.assert_called_once_with("manual_reminder", now=None, slot="1pm", dry_run=True)
        output = json.loads(capsys.readouterr().out)
        assert output["counts"]["total"] == 3
        assert "token_cleanup" not in output
        service.shutdown.assert_called_once()
    
    def test_run_with_token_cleanup(self, service, capsys):
        service.clear_rejected_tokens.return_value = MaintenanceResult("clear_rejected_tokens", False)
        
        code = _run(["run", "-k", "manual_reminder", "--clear-rejected-tokens"], service)
        
        assert code == EXIT_OK
        service.clear_rejected_tokens.assert_called_once()
        assert json.loads(capsys.readouterr().out)["token_cleanup"]["operation"] == "clear_rejected_tokens"
    
    def test_unknown_kind_exit_code(self, service):
        service.run.side_effect = ConfigurationError("Unknown reminder kind: 'nightly'")
        
        assert _run(["run", "-k", "nightly"], service) == EXIT_CONFIG_ERROR
        service.shutdown.assert_called_once()
    
    def test_store_failure_exit_code(self, service):
        service.run.side_effect = RecordStoreError("GET /users answered HTTP 503")
        
        assert _run(["run", "-k", "manual_reminder"], service) == EXIT_STORE_FAILURE
    
    def test_service_factory_config_error(self):
        def factory():
            raise ConfigurationError("OFFICE_TRACKER_DATABASE_URL is not set")
        
        assert main(["report"], service_factory=factory) == EXIT_CONFIG_ERROR
    
    def test_summary(self, service, capsys):
        service.monthly_summary.return_value = MonthlyTargetSummary(
            year=2026, month=1, target_mode=TargetMode.PERCENTAGE, monthly_target=50,
            working_days=22, holidays_in_month=2, leaves_in_month=0,
            adjusted_working_days=20, required_office_days=10,
            office_days_completed=4, days_remaining=6, remaining_working_days=9,
        )
        
        code = _run(["summary", "-u", "user_a", "--now", "2026-01-20T00:00:00"], service)
        
        assert code == EXIT_OK
        assert json.loads(capsys.readouterr().out)["days_remaining"] == 6
    
    def test_summary_unknown_user(self, service):
        service.monthly_summary.side_effect = UserNotFoundError("user_a")
        
        assert _run(["summary", "-u", "user_a"], service) == EXIT_STORE_FAILURE
    
    def test_reset_near_office(self, service, capsys):
        service.reset_near_office.return_value = MaintenanceResult(
            "reset_near_office", True, matched=["a", "b"]
        )
        
        code = _run(["reset-near-office", "--dry-run"], service)
        
        assert code == EXIT_OK
        service.reset_near_office.assert_called_once_with(now=None, dry_run=True)
        assert json.loads(capsys.readouterr().out)["matched"] == 2
    
    def test_report(self, service, capsys):
        service.fleet_report.return_value.to_dict.return_value = {"total": 7}
        
        assert _run(["report"], service) == EXIT_OK
        assert json.loads(capsys.readouterr().out) == {"total": 7}
    
    def test_dry_run_shows_intended_recipients(self, engine, make_raw_user, capsys, caplog):
        store = MagicMock()
        store.fetch_users.return_value = {"iPhone_1768800000000_a": make_raw_user()}
        relay = MagicMock()
        service = NotificationService(store, engine, NotificationDispatchAdapter(relay, clock=engine.clock))
        
        with caplog.at_level(logging.INFO, logger="office_tracker"):
            code = _run(
                ["run", "-k", "manual_reminder", "--now", "2026-01-20T00:00:00+00:00", "--dry-run"],
                service,
            )
        
        assert code == EXIT_OK
        output = json.loads(capsys.readouterr().out)
        assert output["would_send"] == ["iPhone_1768800000000_a"]
        assert "[DRY RUN] Would send manual_reminder to iPhone_1768800000000" in caplog.text
        relay.send.assert_not_called()
        relay.send_batch.assert_not_called()
