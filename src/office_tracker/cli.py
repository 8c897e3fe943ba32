"""Operator CLI - scheduled runs, per-user summaries, fleet report, maintenance.

Exit codes: 0 when the command completed, 1 when the record store could not
be read, 2 on a configuration error (unknown kind or slot, bad rules file,
missing settings).
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from office_tracker.api.service import NotificationService
from office_tracker.common.config import get_config
from office_tracker.common.exceptions import (
    ConfigurationError,
    MalformedRecordError,
    RecordStoreError,
    UserNotFoundError,
)
from office_tracker.common.logging import get_logger
from office_tracker.core.types import ReminderKind

EXIT_OK = 0
EXIT_STORE_FAILURE = 1
EXIT_CONFIG_ERROR = 2

logger = logging.getLogger(__name__)


def _parse_now(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="office-tracker",
        description="Attendance reminder and summary notifications",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Evaluate every user for a kind and send")
    run.add_argument(
        "--kind", "-k",
        required=True,
        help=f"Reminder kind: {', '.join(k.value for k in ReminderKind)}",
    )
    run.add_argument("--slot", "-s", help="Template slot, e.g. 10am, 1pm, 4pm, 6pm")
    run.add_argument("--now", type=_parse_now, help="Run as of this instant (ISO-8601; naive means UTC)")
    run.add_argument("--dry-run", action="store_true", help="Evaluate and log, never send")
    run.add_argument(
        "--clear-rejected-tokens",
        action="store_true",
        help="Afterwards, remove tokens the relay reported as not registered",
    )

    summary = subparsers.add_parser("summary", help="Monthly target summary for one user")
    summary.add_argument("--user", "-u", required=True, help="User id")
    summary.add_argument("--now", type=_parse_now)

    report = subparsers.add_parser("report", help="Fleet health counts")
    report.add_argument("--now", type=_parse_now)

    reset = subparsers.add_parser("reset-near-office", help="Clear raised geofence markers")
    reset.add_argument("--now", type=_parse_now)
    reset.add_argument("--dry-run", action="store_true")

    return parser


def _print(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _cmd_run(service: NotificationService, args: argparse.Namespace) -> int:
    summary = service.run(args.kind, now=args.now, slot=args.slot, dry_run=args.dry_run)
    output = summary.to_dict()
    if args.clear_rejected_tokens:
        output["token_cleanup"] = service.clear_rejected_tokens(
            summary, now=args.now, dry_run=args.dry_run
        ).to_dict()
    _print(output)
    return EXIT_OK


def _cmd_summary(service: NotificationService, args: argparse.Namespace) -> int:
    _print(service.monthly_summary(args.user, now=args.now).to_dict())
    return EXIT_OK


def _cmd_report(service: NotificationService, args: argparse.Namespace) -> int:
    _print(service.fleet_report(now=args.now).to_dict())
    return EXIT_OK


def _cmd_reset(service: NotificationService, args: argparse.Namespace) -> int:
    _print(service.reset_near_office(now=args.now, dry_run=args.dry_run).to_dict())
    return EXIT_OK


COMMANDS: Dict[str, Callable[[NotificationService, argparse.Namespace], int]] = {
    "run": _cmd_run,
    "summary": _cmd_summary,
    "report": _cmd_report,
    "reset-near-office": _cmd_reset,
}


def main(
    argv: Optional[List[str]] = None,
    service_factory: Callable[[], NotificationService] = NotificationService.from_config,
) -> int:
    """Run one CLI command and return its exit code."""
    args = build_parser().parse_args(argv)

    try:
        get_logger("office_tracker", get_config().log_level.value)
        service = service_factory()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        return EXIT_CONFIG_ERROR

    try:
        return COMMANDS[args.command](service, args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        return EXIT_CONFIG_ERROR
    except RecordStoreError as e:
        logger.error(f"Record store failure: {e.message}")
        return EXIT_STORE_FAILURE
    except (UserNotFoundError, MalformedRecordError) as e:
        logger.error(e.message)
        return EXIT_STORE_FAILURE
    finally:
        service.shutdown()


if __name__ == "__main__":
    sys.exit(main())
