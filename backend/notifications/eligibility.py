"""
Eligibility rules for notification sends.

Decides whether a user may receive a notification type right now. Gates are
evaluated in order and the first failing gate decides:

1. Notifications globally disabled
2. Inside quiet hours (windows may wrap midnight)
3. Unknown notification type
4. Preference disabled
5. Any preference condition unmet by the context
6. Daily cap reached (records sent today >= max_per_day)

A denial is a normal outcome, not an error. Users who are muted, in quiet
hours, or capped simply receive nothing.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from models.notification import QuietHours
from notifications.error_logger import log_notification_error
from notifications.errors import PersistenceError
from notifications.preferences import PreferenceService
from notifications.stores import NotificationStore
from shared.utils import format_clock_time, now_in_timezone, start_of_day

GLOBAL_DISABLED = "global_disabled"
QUIET_HOURS = "quiet_hours"
UNKNOWN_TYPE = "unknown_type"
PREFERENCE_DISABLED = "preference_disabled"
CONDITION_UNMET = "condition_unmet"
DAILY_CAP = "daily_cap"
STORAGE_ERROR = "storage_error"


class PolicyDecision(BaseModel):
    """Allow/deny outcome with the gate that denied, if any."""

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "PolicyDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "PolicyDecision":
        return cls(allowed=False, reason=reason)


def is_in_quiet_hours(quiet_hours: QuietHours, current_time: str) -> bool:
    """
    Check whether HH:MM `current_time` falls inside the quiet window.

    Both ends are inclusive. When start > end the window wraps midnight,
    e.g. 22:00-08:00 covers 23:30 and 05:00 but not 10:00.
    """
    start, end = quiet_hours.start, quiet_hours.end
    if start > end:
        return current_time >= start or current_time <= end
    return start <= current_time <= end


def _condition_met(expected: Any, actual: Any) -> bool:
    # bool is checked first: True is also an int
    if isinstance(expected, bool):
        return isinstance(actual, bool) and actual == expected
    if isinstance(expected, (int, float)):
        if isinstance(actual, bool) or not isinstance(actual, (int, float)):
            return False
        return actual >= expected
    return actual == expected


def conditions_met(conditions: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
    """
    Check every condition against the context.

    Numbers are minimums (context value must be >= threshold), booleans and
    strings must match exactly. A key missing from the context is unmet.
    """
    for key, expected in conditions.items():
        if key not in context:
            return False
        if not _condition_met(expected, context[key]):
            return False
    return True


class EligibilityEngine:
    """Ordered allow/deny pipeline over stored preferences and history."""

    def __init__(
        self,
        preference_service: PreferenceService,
        notification_store: NotificationStore,
        clock: Callable[[], datetime] = now_in_timezone,
    ):
        self.preference_service = preference_service
        self.notification_store = notification_store
        self.clock = clock

    def evaluate(
        self,
        user_id: str,
        notification_type: str,
        context: Mapping[str, Any] | None = None,
    ) -> PolicyDecision:
        context = context or {}
        now = self.clock()

        try:
            preferences = self.preference_service.get_user_preferences(user_id)
            settings = preferences.global_settings

            if not settings.enabled:
                return PolicyDecision.deny(GLOBAL_DISABLED)

            if is_in_quiet_hours(settings.quiet_hours, format_clock_time(now)):
                return PolicyDecision.deny(QUIET_HOURS)

            preference = preferences.find(notification_type)
            if preference is None:
                return PolicyDecision.deny(UNKNOWN_TYPE)

            if not preference.enabled:
                return PolicyDecision.deny(PREFERENCE_DISABLED)

            if preference.conditions and not conditions_met(preference.conditions, context):
                return PolicyDecision.deny(CONDITION_UNMET)

            sent_today = self.notification_store.count_since(user_id, start_of_day(now))
            if sent_today >= settings.max_per_day:
                return PolicyDecision.deny(DAILY_CAP)

        except PersistenceError as e:
            # Fail closed: an unreadable preference never turns into a send
            error_file = log_notification_error(
                error_type="eligibility",
                error_message=str(e),
                context={"user_id": user_id, "notification_type": notification_type},
            )
            print(f"  ⚠️  Eligibility check failed for user {user_id}. Details logged to: {error_file}")
            return PolicyDecision.deny(STORAGE_ERROR)

        return PolicyDecision.allow()

    def should_send(
        self,
        user_id: str,
        notification_type: str,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        return self.evaluate(user_id, notification_type, context).allowed

    def already_sent_today(self, user_id: str, notification_type: str) -> bool:
        """
        True if a record of this type was created for the user today.

        Used to send a reminder type at most once per calendar day.
        """
        return self.notification_store.exists_since(
            user_id, notification_type, start_of_day(self.clock())
        )
