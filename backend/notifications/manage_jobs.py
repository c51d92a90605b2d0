"""
CLI for operating the notification jobs.

Usage:
    # List registered jobs and their schedules
    uv run python -m notifications.manage_jobs --list

    # List notification templates
    uv run python -m notifications.manage_jobs --templates

    # Run one job now, outside its schedule
    uv run python -m notifications.manage_jobs --trigger send-reminders

    # Schedule a one-shot notification
    uv run python -m notifications.manage_jobs --schedule USER_ID TEMPLATE_ID 2026-10-20T09:00:00+00:00
"""

import argparse
import sys

from notifications.engine import create_notification_engine
from notifications.errors import ConfigurationError
from shared.utils import parse_timestamp, print_summary


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Operate notification jobs")

    parser.add_argument("--list", action="store_true", help="List registered jobs")

    parser.add_argument("--templates", action="store_true", help="List notification templates")

    parser.add_argument("--trigger", type=str, metavar="JOB", help="Run a job immediately")

    parser.add_argument(
        "--schedule",
        nargs=3,
        metavar=("USER_ID", "TEMPLATE_ID", "WHEN"),
        help="Schedule a one-shot notification (WHEN is an ISO 8601 timestamp)",
    )

    args = parser.parse_args()

    if not (args.list or args.templates or args.trigger or args.schedule):
        parser.error("Must specify --list, --templates, --trigger or --schedule")

    engine = create_notification_engine()

    if args.list:
        for status in engine.scheduler.get_status():
            print(f"{status.name:<24} {status.schedule}")

    if args.templates:
        for template in engine.templates.all_templates():
            print(f"{template.id:<24} {template.category:<12} {template.priority}")

    if args.trigger:
        try:
            result = engine.scheduler.trigger_job(args.trigger)
        except ConfigurationError as e:
            print(f"✗ {e}")
            sys.exit(2)

        if result.status == "failed":
            print(f"✗ Job {args.trigger} failed: {result.error}")
            sys.exit(1)

        stats = result.result or {}
        if {"sent", "failed", "skipped"} & set(stats):
            print_summary(f"Job {args.trigger}", stats)
        else:
            print(f"✓ Job {args.trigger} finished: {stats}")

    if args.schedule:
        user_id, template_id, when = args.schedule
        scheduled_for = parse_timestamp(when)
        if scheduled_for is None:
            parser.error(f"Invalid timestamp: {when}")
        try:
            engine.dispatcher.schedule_notification(user_id, template_id, scheduled_for)
        except ConfigurationError as e:
            print(f"✗ {e}")
            sys.exit(2)


if __name__ == "__main__":
    main()
