"""
Integration tests for the notification jobs.

Wires the real engine components over in-memory stores and drives them
through the scheduler the same way the cron triggers do.
"""

import unittest
from datetime import datetime, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from notifications.campaigns import CampaignRunner
from notifications.dispatcher import DeliveryDispatcher
from notifications.eligibility import EligibilityEngine
from notifications.engine import create_notification_engine
from notifications.jobs import JOB_SCHEDULES, register_notification_jobs
from notifications.preferences import PreferenceService
from notifications.reminder_matcher import ReminderMatcher
from notifications.scheduler import NotificationScheduler
from notifications.templates import TemplateRegistry
from tests.fixtures.fakes import (
    FixedClock,
    InMemoryDeviceStore,
    InMemoryNotificationStore,
    InMemoryPreferenceStore,
    InMemoryScheduledStore,
    InMemoryUserDirectory,
    ScriptedPushGateway,
)
from tests.fixtures.mock_helpers import create_mock_supabase
from tests.fixtures.user_factory import create_test_device, create_test_settings_row


@patch("builtins.print")
class TestNotificationJobs(unittest.TestCase):
    """Drives jobs end to end through NotificationScheduler.trigger_job()"""

    def setUp(self):
        self.clock = FixedClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
        self.preference_store = InMemoryPreferenceStore(
            [
                create_test_settings_row(user_id="ana"),
                create_test_settings_row(
                    user_id="ben", quiet_hours_start="08:30", quiet_hours_end="09:30"
                ),
            ]
        )
        self.ana_devices = [create_test_device(user_id="ana") for _ in range(3)]
        self.devices = InMemoryDeviceStore(self.ana_devices + [create_test_device(user_id="ben")])
        self.notifications = InMemoryNotificationStore()
        self.scheduled = InMemoryScheduledStore()
        self.users = InMemoryUserDirectory(names={"ana": "Ana", "ben": "Ben"})
        self.gateway = ScriptedPushGateway()

        preferences = PreferenceService(self.preference_store)
        eligibility = EligibilityEngine(preferences, self.notifications, clock=self.clock)
        self.dispatcher = DeliveryDispatcher(
            TemplateRegistry.from_catalog(),
            self.gateway,
            self.devices,
            self.notifications,
            self.users,
            scheduled=self.scheduled,
            clock=self.clock,
            max_workers=1,
        )
        reminders = ReminderMatcher(preferences, eligibility, self.dispatcher, clock=self.clock)
        campaigns = CampaignRunner(eligibility, self.dispatcher, self.users, clock=self.clock)

        self.scheduler = NotificationScheduler(timezone=ZoneInfo("UTC"))
        register_notification_jobs(self.scheduler, self.dispatcher, reminders, campaigns)

    def test_reminder_job_twice_in_one_day_sends_once(self, mock_print):
        first = self.scheduler.trigger_job("send-reminders")
        second = self.scheduler.trigger_job("send-reminders")

        # ben is inside his quiet hours at 09:00
        self.assertEqual(first.result, {"sent": 1, "failed": 0, "skipped": 1})
        self.assertEqual(second.result, {"sent": 0, "failed": 0, "skipped": 2})
        self.assertEqual(len(self.notifications.for_user("ana")), 1)
        self.assertEqual(self.notifications.for_user("ben"), [])

    def test_partial_device_failure_recorded_once(self, mock_print):
        self.gateway.outcomes = {self.ana_devices[2].token: "error"}

        result = self.scheduler.trigger_job("send-reminders")

        self.assertEqual(result.status, "succeeded")
        records = self.notifications.for_user("ana")
        self.assertEqual(len(records), 1)
        self.assertIsNotNone(records[0].sent_at)
        self.assertEqual(len(self.gateway.messages), 3)

    def test_scheduled_notification_job(self, mock_print):
        self.dispatcher.schedule_notification("ana", "savings_celebration", self.clock.now, {"savingsAmount": 15})

        result = self.scheduler.trigger_job("process-scheduled")

        self.assertEqual(result.result["sent"], 1)
        self.assertIn("15", self.gateway.messages[0].body)

    def test_failing_job_does_not_affect_others(self, mock_print):
        self.users.list_users_with_goals = lambda: 1 / 0

        with patch("notifications.scheduler.log_notification_error", return_value="log.txt"):
            broken = self.scheduler.trigger_job("goal-reminders")
        healthy = self.scheduler.trigger_job("send-reminders")

        self.assertEqual(broken.status, "failed")
        self.assertIn("ZeroDivisionError", broken.error)
        self.assertEqual(healthy.status, "succeeded")
        statuses = {s.name: s for s in self.scheduler.get_status()}
        self.assertEqual(statuses["goal-reminders"].failures, 1)
        self.assertEqual(statuses["send-reminders"].failures, 0)

    def test_cleanup_job(self, mock_print):
        result = self.scheduler.trigger_job("cleanup-notifications")

        self.assertEqual(result.result, {"deleted": 0})


@patch("builtins.print")
class TestCreateNotificationEngine(unittest.TestCase):
    """Tests for create_notification_engine() wiring"""

    def test_registers_all_jobs_without_starting(self, mock_print):
        engine = create_notification_engine(
            client=create_mock_supabase(), gateway=ScriptedPushGateway()
        )

        self.assertEqual(sorted(engine.scheduler.registry.names()), sorted(JOB_SCHEDULES))
        self.assertFalse(engine.scheduler.is_running)
        self.assertIs(engine.dispatcher.gateway.__class__, ScriptedPushGateway)
        self.assertEqual(len(engine.templates), 15)

    def test_engines_are_independent(self, mock_print):
        first = create_notification_engine(client=create_mock_supabase(), gateway=ScriptedPushGateway())
        second = create_notification_engine(client=create_mock_supabase(), gateway=ScriptedPushGateway())

        self.assertIsNot(first.scheduler, second.scheduler)
        self.assertIsNot(first.scheduler.registry, second.scheduler.registry)


if __name__ == "__main__":
    unittest.main()
