"""
Push delivery for notification templates.

Resolves a user's active devices, renders the template once per device,
sends the messages in gateway-sized chunks and records one notification per
logical send. Delivery counts come from the gateway's per-message tickets.
"""

import os
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any

from models.notification import (
    BulkSendResult,
    NotificationRecord,
    ScheduledNotification,
    SendResult,
)
from models.push import PushMessage
from notifications.error_logger import log_notification_error
from notifications.errors import PersistenceError
from notifications.push_gateway import PushGateway, chunk_messages, is_push_token
from notifications.stores import (
    DeviceStore,
    NotificationStore,
    ScheduledNotificationStore,
    UserDirectory,
)
from notifications.templates import TemplateRegistry
from shared.utils import now_in_timezone

DEFAULT_USER_NAME = "there"
RETENTION_DAYS = int(os.getenv("NOTIFICATION_RETENTION_DAYS", "30"))


class DeliveryDispatcher:
    """Renders templates and delivers them to every active device of a user."""

    def __init__(
        self,
        templates: TemplateRegistry,
        gateway: PushGateway,
        devices: DeviceStore,
        notifications: NotificationStore,
        users: UserDirectory,
        scheduled: ScheduledNotificationStore | None = None,
        clock: Callable[[], datetime] = now_in_timezone,
        max_workers: int | None = None,
    ):
        self.templates = templates
        self.gateway = gateway
        self.devices = devices
        self.notifications = notifications
        self.users = users
        self.scheduled = scheduled
        self.clock = clock
        self.max_workers = max_workers or int(os.getenv("NOTIFICATION_FANOUT_WORKERS", "1"))

    def _user_context(self, user_id: str, context: Mapping[str, Any] | None) -> dict[str, Any]:
        """Merge the user's display name under the caller's context."""
        user_name = self.users.get_display_name(user_id) or DEFAULT_USER_NAME
        return {"userName": user_name, **(context or {})}

    def send_to_user(
        self,
        user_id: str,
        template_id: str,
        context: Mapping[str, Any] | None = None,
    ) -> SendResult:
        """
        Send a template to all of a user's active devices.

        Returns:
            SendResult with per-device sent/failed counts. success=False only
            for an unknown template or a storage failure; delivery failures
            are reported through `failed`.
        """
        template = self.templates.get_template(template_id)
        if template is None:
            return SendResult(success=False, error=f"Template {template_id} not found")

        try:
            devices = self.devices.list_active(user_id)
            tokens = [device.token for device in devices if is_push_token(device.token)]

            if not tokens:
                # Nothing was attempted, so nothing is recorded
                print(f"  ⊘ No active push devices for user {user_id}")
                return SendResult(success=True, sent=0, failed=0)

            render_context = self._user_context(user_id, context)
            title, body = self.templates.render(template, render_context)
            timestamp = self.clock().isoformat()

            messages = [
                PushMessage(
                    to=token,
                    title=title,
                    body=body,
                    data={
                        **template.data,
                        "templateId": template_id,
                        "userId": user_id,
                        "timestamp": timestamp,
                    },
                    sound=template.sound,
                    priority=template.priority,
                    category=template.category,
                )
                for token in tokens
            ]

            sent, failed = self._deliver(user_id, template_id, messages)

            now = self.clock()
            self.notifications.create(
                NotificationRecord(
                    user_id=user_id,
                    title=title,
                    body=body,
                    type=template_id,
                    sent_at=now if sent > 0 else None,
                    created_at=now,
                )
            )

        except PersistenceError as e:
            error_file = log_notification_error(
                error_type="persistence",
                error_message=str(e),
                context={"user_id": user_id, "template_id": template_id},
            )
            print(f"  ✗ Storage error sending {template_id} to user {user_id}. Details logged to: {error_file}")
            return SendResult(success=False, error=str(e))

        print(f"  ✓ Sent {template_id} to user {user_id}: {sent} delivered, {failed} failed")
        return SendResult(success=True, sent=sent, failed=failed)

    def _deliver(
        self, user_id: str, template_id: str, messages: list[PushMessage]
    ) -> tuple[int, int]:
        """Send messages chunk by chunk and count tickets."""
        sent = 0
        failed = 0

        for chunk in chunk_messages(messages, self.gateway.max_batch_size):
            try:
                tickets = self.gateway.send(chunk)
            except Exception as e:
                # Any chunk-level failure counts the whole chunk as failed; remaining chunks still go out
                failed += len(chunk)
                error_file = log_notification_error(
                    error_type="delivery",
                    error_message=f"{type(e).__name__}: {e}",
                    context={
                        "user_id": user_id,
                        "template_id": template_id,
                        "chunk_size": len(chunk),
                    },
                )
                print(f"  ✗ Push chunk failed for user {user_id}. Details logged to: {error_file}")
                continue

            for ticket in tickets:
                if ticket.ok:
                    sent += 1
                else:
                    failed += 1
                    print(f"  ⚠️  Push notification failed for user {user_id}: {ticket.message}")

        return sent, failed

    def send_to_users(
        self,
        user_ids: Iterable[str],
        template_id: str,
        context: Mapping[str, Any] | None = None,
    ) -> BulkSendResult:
        """Fan out send_to_user() and aggregate the totals."""
        user_ids = list(dict.fromkeys(user_ids))
        summary = BulkSendResult()

        if self.max_workers > 1 and len(user_ids) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(
                    executor.map(lambda uid: self.send_to_user(uid, template_id, context), user_ids)
                )
        else:
            outcomes = [self.send_to_user(uid, template_id, context) for uid in user_ids]

        for user_id, result in zip(user_ids, outcomes):
            summary.results[user_id] = result
            summary.total_sent += result.sent
            summary.total_failed += result.failed
            if not result.success:
                summary.success = False

        return summary

    def schedule_notification(
        self,
        user_id: str,
        template_id: str,
        scheduled_for: datetime,
        context: Mapping[str, Any] | None = None,
    ) -> ScheduledNotification:
        """Store a one-shot send for later delivery by the process-scheduled job."""
        self.templates.require_template(template_id)
        if self.scheduled is None:
            raise PersistenceError("No scheduled notification store configured")

        scheduled = self.scheduled.create(
            ScheduledNotification(
                user_id=user_id,
                template_id=template_id,
                scheduled_for=scheduled_for,
                context=dict(context or {}),
            )
        )
        print(f"  ✓ Scheduled {template_id} for user {user_id} at {scheduled_for.isoformat()}")
        return scheduled

    def process_scheduled_notifications(self, limit: int = 100) -> dict[str, int]:
        """
        Fire scheduled notifications that are due.

        Each row is claimed (sent=True) before delivery, so a row is
        delivered at most once even if ticks overlap.
        """
        stats = {"sent": 0, "failed": 0, "skipped": 0}
        if self.scheduled is None:
            return stats

        now = self.clock()
        due = self.scheduled.list_due(now, limit=limit)

        for item in due:
            if item.id is None or not self.scheduled.mark_sent(item.id, now):
                stats["skipped"] += 1
                continue

            result = self.send_to_user(item.user_id, item.template_id, item.context)
            if not result.success or result.failed:
                stats["failed"] += 1
            elif result.sent:
                stats["sent"] += 1
            else:
                stats["skipped"] += 1

        if due:
            print(f"Processed {len(due)} scheduled notifications")
        return stats

    def cleanup_old_notifications(self, retention_days: int = RETENTION_DAYS) -> dict[str, int]:
        """Delete notification records older than the retention window."""
        cutoff = self.clock() - timedelta(days=retention_days)
        deleted = self.notifications.delete_before(cutoff)
        print(f"Deleted {deleted} notifications older than {retention_days} days")
        return {"deleted": deleted}
