"""
Time-of-day reminder matching.

Runs every minute. A daily reminder fires when its stored time equals the
current HH:MM, the user has not received that reminder type today, and the
eligibility engine allows it.
"""

from collections.abc import Callable
from datetime import datetime

from notifications.dispatcher import DeliveryDispatcher
from notifications.eligibility import EligibilityEngine
from notifications.error_logger import log_notification_error
from notifications.errors import PersistenceError
from notifications.preferences import PreferenceService
from shared.utils import format_clock_time, now_in_timezone


class ReminderMatcher:
    """Turns stored reminder times into sends on each minute tick."""

    def __init__(
        self,
        preference_service: PreferenceService,
        eligibility: EligibilityEngine,
        dispatcher: DeliveryDispatcher,
        clock: Callable[[], datetime] = now_in_timezone,
    ):
        self.preference_service = preference_service
        self.eligibility = eligibility
        self.dispatcher = dispatcher
        self.clock = clock

    def due_reminders(self, current_time: str) -> list[tuple[str, str]]:
        """(user_id, reminder type) pairs whose stored time is `current_time`."""
        due = []
        for row in self.preference_service.store.list_all():
            user_prefs = self.preference_service.merge(row["user_id"], row)
            for pref in user_prefs.preferences:
                if (
                    pref.category == "reminder"
                    and pref.frequency == "daily"
                    and pref.enabled
                    and pref.time == current_time
                ):
                    due.append((user_prefs.user_id, pref.id))
        return due

    def run(self) -> dict[str, int]:
        current_time = format_clock_time(self.clock())
        stats = {"sent": 0, "failed": 0, "skipped": 0}

        due = self.due_reminders(current_time)
        if due:
            print(f"Found {len(due)} reminders due at {current_time}")

        for user_id, reminder_type in due:
            try:
                if self.eligibility.already_sent_today(user_id, reminder_type):
                    stats["skipped"] += 1
                    continue
            except PersistenceError as e:
                error_file = log_notification_error(
                    error_type="reminder",
                    error_message=str(e),
                    context={"user_id": user_id, "reminder_type": reminder_type},
                )
                print(f"  ✗ Could not check reminder history for user {user_id}. Details logged to: {error_file}")
                stats["failed"] += 1
                continue

            if not self.eligibility.should_send(user_id, reminder_type):
                stats["skipped"] += 1
                continue

            result = self.dispatcher.send_to_user(user_id, reminder_type)
            if not result.success or (result.failed and not result.sent):
                stats["failed"] += 1
            elif result.sent:
                stats["sent"] += 1
            else:
                stats["skipped"] += 1

        return stats
