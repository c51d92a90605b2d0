"""
Audience-driven notification campaigns.

Each campaign pulls an audience from the user directory, gates every user
through the eligibility engine, and sends one template. Audience rows carry
the context values the notification type's conditions are checked against.
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from notifications.dispatcher import DeliveryDispatcher
from notifications.eligibility import EligibilityEngine
from notifications.error_logger import log_notification_error
from notifications.errors import PersistenceError
from notifications.stores import UserDirectory
from shared.utils import days_ago, now_in_timezone, start_of_day


class CampaignRunner:
    """Runs the scheduled audience campaigns."""

    def __init__(
        self,
        eligibility: EligibilityEngine,
        dispatcher: DeliveryDispatcher,
        users: UserDirectory,
        clock: Callable[[], datetime] = now_in_timezone,
    ):
        self.eligibility = eligibility
        self.dispatcher = dispatcher
        self.users = users
        self.clock = clock

    def _send_gated(
        self,
        campaign: str,
        audience: Iterable[dict[str, Any]],
        notification_type: str,
        context_for: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
        once_per_day: bool = False,
    ) -> dict[str, int]:
        stats = {"sent": 0, "failed": 0, "skipped": 0}

        for member in audience:
            user_id = member["user_id"]
            try:
                context = {k: v for k, v in member.items() if k != "user_id" and v is not None}
                if context_for:
                    context.update(context_for(member))

                if once_per_day and self.eligibility.already_sent_today(user_id, notification_type):
                    stats["skipped"] += 1
                    continue

            except PersistenceError as e:
                error_file = log_notification_error(
                    error_type="campaign",
                    error_message=str(e),
                    context={"campaign": campaign, "user_id": user_id},
                )
                print(f"  ✗ Error preparing {campaign} for user {user_id}. Details logged to: {error_file}")
                stats["failed"] += 1
                continue

            if not self.eligibility.should_send(user_id, notification_type, context):
                stats["skipped"] += 1
                continue

            result = self.dispatcher.send_to_user(user_id, notification_type, context)
            if not result.success or (result.failed and not result.sent):
                stats["failed"] += 1
            elif result.sent:
                stats["sent"] += 1
            else:
                stats["skipped"] += 1

        print(
            f"{campaign}: {stats['sent']} sent, {stats['skipped']} skipped, {stats['failed']} failed"
        )
        return stats

    def send_weekly_summaries(self) -> dict[str, int]:
        since = days_ago(self.clock(), 7)
        return self._send_gated(
            "Weekly summaries",
            self.users.list_active_users(),
            "weekly_summary",
            context_for=lambda member: self.users.get_activity_stats(member["user_id"], since),
        )

    def send_monthly_insights(self) -> dict[str, int]:
        since = days_ago(self.clock(), 30)
        return self._send_gated(
            "Monthly insights",
            self.users.list_active_users(),
            "mood_insight",
            context_for=lambda member: self.users.get_activity_stats(member["user_id"], since),
        )

    def send_subscription_reminders(self) -> dict[str, int]:
        return self._send_gated(
            "Subscription reminders",
            self.users.list_free_users(self.clock()),
            "subscription_upgrade",
        )

    def send_goal_reminders(self) -> dict[str, int]:
        return self._send_gated(
            "Goal reminders",
            self.users.list_users_with_goals(),
            "goal_reminder",
        )

    def send_crisis_support_checks(self, lookback_days: int = 3) -> dict[str, int]:
        since = start_of_day(self.clock()) - timedelta(days=lookback_days - 1)
        return self._send_gated(
            "Crisis support checks",
            self.users.list_users_needing_support(since),
            "crisis_support",
            once_per_day=True,
        )

    def send_contextual_notifications(self) -> dict[str, int]:
        """Nudge users who have not checked in today with a mood reminder."""
        today = start_of_day(self.clock())
        return self._send_gated(
            "Contextual notifications",
            self.users.list_users_without_checkin(today),
            "mood_reminder",
            once_per_day=True,
        )
