import os
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo
from dateutil import parser as date_parser


def get_notification_timezone() -> ZoneInfo:
    """Timezone used for quiet hours, reminder times and day boundaries."""
    return ZoneInfo(os.getenv("NOTIFICATION_TIMEZONE", "UTC"))


def now_in_timezone(tz: ZoneInfo | None = None) -> datetime:
    """Current time as an aware datetime in the notification timezone."""
    return datetime.now(tz or get_notification_timezone())


def format_clock_time(moment: datetime) -> str:
    """Format a datetime as HH:MM (24-hour)."""
    return moment.strftime("%H:%M")


def start_of_day(moment: datetime) -> datetime:
    """Midnight of the calendar day containing `moment`, same tzinfo."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def days_ago(moment: datetime, days: int) -> datetime:
    return moment - timedelta(days=days)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a database timestamp (ISO string or datetime) into a datetime."""
    if value is None or isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return date_parser.isoparse(value)
    except (ValueError, OverflowError, TypeError):
        return None


def print_summary(title: str, stats: dict[str, int]) -> None:
    """Print processing summary."""
    print(f"\n{'=' * 60}")
    print(f"[{datetime.now()}] {title} Complete!")
    print(f"{'=' * 60}")
    print(f"✓ Sent:    {stats.get('sent', 0)}")
    print(f"⊘ Skipped: {stats.get('skipped', 0)}")
    print(f"✗ Failed:  {stats.get('failed', 0)}")
    print(f"{'=' * 60}\n")
