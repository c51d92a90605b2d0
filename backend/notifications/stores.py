"""
Supabase-backed storage for the notification engine.

Every store takes an optional Supabase client so tests can pass a mock.
Database failures are re-raised as PersistenceError; nothing here is cached
in-process, so each call is at least one round trip.
"""

from datetime import datetime
from typing import Any, cast

from supabase import Client

from models.notification import Device, NotificationRecord, ScheduledNotification
from notifications.errors import PersistenceError
from shared.db import (
    DEVICES_TABLE,
    NOTIFICATIONS_TABLE,
    SCHEDULED_TABLE,
    SETTINGS_TABLE,
    SUBSCRIPTIONS_TABLE,
    USERS_TABLE,
    get_supabase_client,
)
from shared.utils import now_in_timezone, parse_timestamp

# mood_entries.mood_value runs 1-10
LOW_MOOD_THRESHOLD = 4


def _execute(query: Any, action: str) -> Any:
    """Run a query builder, converting client errors into PersistenceError."""
    try:
        return query.execute()
    except Exception as e:
        raise PersistenceError(f"Failed to {action}: {e}") from e


def _rows(response: Any) -> list[dict[str, Any]]:
    return cast(list[dict[str, Any]], response.data or [])


def _device_from_row(row: dict[str, Any]) -> Device:
    try:
        return Device(
            id=row.get("id"),
            user_id=row["user_id"],
            token=row["expo_push_token"],
            platform=row.get("platform") or "unknown",
            device_model=row.get("device_model"),
            active=row.get("is_active", True),
            last_seen=parse_timestamp(row.get("updated_at")),
        )
    except (KeyError, ValueError) as e:
        raise PersistenceError(f"Malformed push device row {row.get('id')}: {e}") from e


def _record_from_row(row: dict[str, Any]) -> NotificationRecord:
    return NotificationRecord(
        id=row.get("id"),
        user_id=row["user_id"],
        title=row["title"],
        body=row["body"],
        type=row["type"],
        sent_at=parse_timestamp(row.get("sent_at")),
        read_at=parse_timestamp(row.get("read_at")),
        created_at=parse_timestamp(row["created_at"]),
    )


def _scheduled_from_row(row: dict[str, Any]) -> ScheduledNotification:
    return ScheduledNotification(
        id=row.get("id"),
        user_id=row["user_id"],
        template_id=row["template_id"],
        scheduled_for=parse_timestamp(row["scheduled_for"]),
        sent=row.get("sent", False),
        sent_at=parse_timestamp(row.get("sent_at")),
        context=row.get("context") or {},
    )


class PreferenceStore:
    """
    Raw per-user notification settings rows.

    Row shape:
        user_id, preferences (JSON: type -> overrides), global_enabled,
        quiet_hours_start, quiet_hours_end, max_notifications_per_day,
        priority_level
    """

    def __init__(self, client: Client | None = None):
        self.client = client or get_supabase_client()

    def get(self, user_id: str) -> dict[str, Any] | None:
        response = _execute(
            self.client.table(SETTINGS_TABLE).select("*").eq("user_id", user_id).limit(1),
            f"load notification settings for user {user_id}",
        )
        rows = _rows(response)
        return rows[0] if rows else None

    def upsert(self, user_id: str, settings: dict[str, Any]) -> dict[str, Any]:
        row = {**settings, "user_id": user_id}
        response = _execute(
            self.client.table(SETTINGS_TABLE).upsert(row, on_conflict="user_id"),
            f"save notification settings for user {user_id}",
        )
        rows = _rows(response)
        return rows[0] if rows else row

    def list_all(self) -> list[dict[str, Any]]:
        """Settings rows not globally switched off. NULL global_enabled counts as on."""
        response = _execute(
            self.client.table(SETTINGS_TABLE)
            .select("*")
            .or_("global_enabled.is.null,global_enabled.eq.true"),
            "list notification settings",
        )
        return _rows(response)


class DeviceStore:
    """Push devices. Rows are deactivated, never deleted."""

    def __init__(self, client: Client | None = None):
        self.client = client or get_supabase_client()

    def list_active(self, user_id: str) -> list[Device]:
        response = _execute(
            self.client.table(DEVICES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", True),
            f"list devices for user {user_id}",
        )
        return [_device_from_row(row) for row in _rows(response)]

    def register(
        self,
        user_id: str,
        token: str,
        platform: str,
        device_model: str | None = None,
        now: datetime | None = None,
    ) -> Device:
        """
        Upsert the row for this Expo token and mark it active.

        expo_push_token is unique across accounts, so registering a token that
        another account owns (app reinstall with a different login) moves the
        row to this user. A device only ever receives pushes for the account
        that registered it last.
        """
        seen_at = (now or now_in_timezone()).isoformat()
        row = {
            "user_id": user_id,
            "expo_push_token": token,
            "platform": platform,
            "device_model": device_model,
            "is_active": True,
            "updated_at": seen_at,
        }
        response = _execute(
            self.client.table(DEVICES_TABLE).upsert(row, on_conflict="expo_push_token"),
            f"register device for user {user_id}",
        )
        rows = _rows(response)
        return _device_from_row(rows[0] if rows else row)

    def unregister(self, user_id: str, device_id: str) -> bool:
        """Deactivate a device. Returns False if the user has no such device."""
        response = _execute(
            self.client.table(DEVICES_TABLE)
            .update({"is_active": False})
            .eq("id", device_id)
            .eq("user_id", user_id),
            f"unregister device {device_id}",
        )
        return bool(_rows(response))


class NotificationStore:
    """Notification history: one row per logical send."""

    def __init__(self, client: Client | None = None):
        self.client = client or get_supabase_client()

    def create(self, record: NotificationRecord) -> NotificationRecord:
        row = record.model_dump(mode="json", exclude_none=True)
        response = _execute(
            self.client.table(NOTIFICATIONS_TABLE).insert(row),
            f"record notification for user {record.user_id}",
        )
        rows = _rows(response)
        return _record_from_row(rows[0]) if rows else record

    def count_since(
        self,
        user_id: str,
        since: datetime,
        notification_type: str | None = None,
        column: str = "sent_at",
    ) -> int:
        """Count a user's records whose `column` timestamp is >= since."""
        query = (
            self.client.table(NOTIFICATIONS_TABLE)
            .select("id", count="exact")
            .eq("user_id", user_id)
            .gte(column, since.isoformat())
        )
        if notification_type:
            query = query.eq("type", notification_type)

        response = _execute(query, f"count notifications for user {user_id}")
        if response.count is not None:
            return int(response.count)
        return len(_rows(response))

    def exists_since(self, user_id: str, notification_type: str, since: datetime) -> bool:
        """True if a record of this type was created for the user since `since`."""
        return self.count_since(user_id, since, notification_type, column="created_at") > 0

    def delete_before(self, cutoff: datetime) -> int:
        response = _execute(
            self.client.table(NOTIFICATIONS_TABLE)
            .delete()
            .lt("created_at", cutoff.isoformat()),
            "delete old notifications",
        )
        return len(_rows(response))


class ScheduledNotificationStore:
    """Deferred one-shot sends."""

    def __init__(self, client: Client | None = None):
        self.client = client or get_supabase_client()

    def create(self, scheduled: ScheduledNotification) -> ScheduledNotification:
        row = scheduled.model_dump(mode="json", exclude_none=True)
        response = _execute(
            self.client.table(SCHEDULED_TABLE).insert(row),
            f"schedule notification for user {scheduled.user_id}",
        )
        rows = _rows(response)
        return _scheduled_from_row(rows[0]) if rows else scheduled

    def list_due(self, now: datetime, limit: int = 100) -> list[ScheduledNotification]:
        response = _execute(
            self.client.table(SCHEDULED_TABLE)
            .select("*")
            .eq("sent", False)
            .lte("scheduled_for", now.isoformat())
            .order("scheduled_for", desc=False)
            .limit(limit),
            "list due scheduled notifications",
        )
        return [_scheduled_from_row(row) for row in _rows(response)]

    def mark_sent(self, scheduled_id: str, sent_at: datetime) -> bool:
        """
        Flip sent=False to sent=True. Returns False if another tick already
        claimed the row; the filter on sent=False makes the transition one-way.
        """
        response = _execute(
            self.client.table(SCHEDULED_TABLE)
            .update({"sent": True, "sent_at": sent_at.isoformat()})
            .eq("id", scheduled_id)
            .eq("sent", False),
            f"mark scheduled notification {scheduled_id} sent",
        )
        return bool(_rows(response))


class UserDirectory:
    """
    Read-only view over user-facing tables owned by other services.

    Audience queries return dicts with a "user_id" key plus the context
    values the matching notification type's conditions are checked against.
    """

    def __init__(self, client: Client | None = None):
        self.client = client or get_supabase_client()

    def get_display_name(self, user_id: str) -> str | None:
        response = _execute(
            self.client.table(USERS_TABLE).select("first_name").eq("id", user_id).limit(1),
            f"load user {user_id}",
        )
        rows = _rows(response)
        return rows[0].get("first_name") if rows else None

    def _list_users(self, columns: str = "id, first_name, created_at") -> list[dict[str, Any]]:
        return _rows(_execute(self.client.table(USERS_TABLE).select(columns), "list users"))

    def list_active_users(self) -> list[dict[str, Any]]:
        return [
            {"user_id": row["id"], "userName": row.get("first_name")}
            for row in self._list_users()
        ]

    def list_free_users(self, now: datetime) -> list[dict[str, Any]]:
        """
        Users without a live paid subscription. A user with no subscriptions
        row is on the free plan.
        """
        paid = _execute(
            self.client.table(SUBSCRIPTIONS_TABLE)
            .select("user_id")
            .neq("plan", "free")
            .in_("status", ["active", "trialing"]),
            "list paid subscriptions",
        )
        paid_ids = {row["user_id"] for row in _rows(paid)}

        audience = []
        for row in self._list_users():
            if row["id"] in paid_ids:
                continue
            created_at = parse_timestamp(row.get("created_at"))
            usage_days = (now - created_at).days if created_at else 0
            audience.append(
                {
                    "user_id": row["id"],
                    "userName": row.get("first_name"),
                    "isFreeUser": True,
                    "usageDays": usage_days,
                }
            )
        return audience

    def list_users_with_goals(self) -> list[dict[str, Any]]:
        # No goals table exists yet, so the goal audience is always empty
        return []

    def list_users_needing_support(
        self, since: datetime, mood_threshold: int = LOW_MOOD_THRESHOLD
    ) -> list[dict[str, Any]]:
        """Users with low-mood entries since `since`, counted per calendar day."""
        response = _execute(
            self.client.table("mood_entries")
            .select("user_id, created_at")
            .lte("mood_value", mood_threshold)
            .gte("created_at", since.isoformat()),
            "list low mood entries",
        )
        low_days: dict[str, set[str]] = {}
        for row in _rows(response):
            created_at = parse_timestamp(row.get("created_at"))
            if created_at is None:
                continue
            low_days.setdefault(row["user_id"], set()).add(created_at.date().isoformat())

        return [
            {"user_id": user_id, "consecutiveLowMoodDays": len(days)}
            for user_id, days in sorted(low_days.items())
        ]

    def list_users_without_checkin(self, since: datetime, limit: int = 50) -> list[dict[str, Any]]:
        checkins = _execute(
            self.client.table("daily_checkins")
            .select("user_id")
            .gte("created_at", since.isoformat()),
            "list today's check-ins",
        )
        checked_in = {row["user_id"] for row in _rows(checkins)}

        audience = []
        for row in self._list_users("id, first_name"):
            if row["id"] in checked_in:
                continue
            audience.append({"user_id": row["id"], "userName": row.get("first_name")})
            if len(audience) >= limit:
                break
        return audience

    def get_activity_stats(self, user_id: str, since: datetime) -> dict[str, Any]:
        """Mood, sleep and savings figures since `since`. Keys are omitted when there is no data."""
        stats: dict[str, Any] = {}

        moods = _rows(
            _execute(
                self.client.table("mood_entries")
                .select("mood_value")
                .eq("user_id", user_id)
                .gte("created_at", since.isoformat()),
                f"load moods for user {user_id}",
            )
        )
        if moods:
            stats["mood"] = round(sum(r["mood_value"] for r in moods) / len(moods), 1)
            stats["dataPoints"] = len(moods)

        sleep = [
            row
            for row in _rows(
                _execute(
                    self.client.table("sleep_logs")
                    .select("sleep_duration_minutes")
                    .eq("user_id", user_id)
                    .gte("created_at", since.isoformat()),
                    f"load sleep for user {user_id}",
                )
            )
            if row.get("sleep_duration_minutes") is not None
        ]
        if sleep:
            minutes = sum(r["sleep_duration_minutes"] for r in sleep) / len(sleep)
            stats["sleepHours"] = round(minutes / 60, 1)

        savings = _rows(
            _execute(
                self.client.table("savings_records")
                .select("amount")
                .eq("user_id", user_id)
                .gte("created_at", since.isoformat()),
                f"load savings for user {user_id}",
            )
        )
        if savings:
            # DECIMAL columns come back from PostgREST as numbers or strings
            stats["savingsAmount"] = round(sum(float(r["amount"]) for r in savings), 2)

        return stats
