"""Orchestration - reminder runs, maintenance jobs and fleet diagnostics."""

from office_tracker.orchestration.reminder_job import ReminderJob, RunSummary
from office_tracker.orchestration.maintenance import (
    MaintenanceResult,
    clear_rejected_tokens,
    reset_near_office_flags,
)
from office_tracker.orchestration.diagnostics import FleetReport, fleet_report

__all__ = [
    "ReminderJob",
    "RunSummary",
    "MaintenanceResult",
    "clear_rejected_tokens",
    "reset_near_office_flags",
    "FleetReport",
    "fleet_report",
]
