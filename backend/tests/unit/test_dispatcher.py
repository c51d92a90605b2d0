"""
Unit tests for notifications/dispatcher.py

Tests per-device delivery counting, history recording, chunking, bulk
fan-out, scheduled notifications and retention cleanup.
"""

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from notifications.dispatcher import DeliveryDispatcher
from notifications.errors import ConfigurationError
from notifications.templates import TemplateRegistry
from tests.fixtures.fakes import (
    FixedClock,
    InMemoryDeviceStore,
    InMemoryNotificationStore,
    InMemoryScheduledStore,
    InMemoryUserDirectory,
    ScriptedPushGateway,
)
from tests.fixtures.user_factory import create_test_device, create_test_record

USER_ID = "user_001"


@patch("builtins.print")
@patch("notifications.dispatcher.log_notification_error", return_value="log.txt")
class TestSendToUser(unittest.TestCase):
    """Tests for DeliveryDispatcher.send_to_user()"""

    def setUp(self):
        self.clock = FixedClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
        self.devices = InMemoryDeviceStore()
        self.notifications = InMemoryNotificationStore()
        self.users = InMemoryUserDirectory(names={USER_ID: "Ana"})
        self.gateway = ScriptedPushGateway()
        self.dispatcher = DeliveryDispatcher(
            TemplateRegistry.from_catalog(),
            self.gateway,
            self.devices,
            self.notifications,
            self.users,
            scheduled=InMemoryScheduledStore(),
            clock=self.clock,
            max_workers=1,
        )

    def _add_devices(self, count, user_id=USER_ID):
        devices = [create_test_device(user_id=user_id) for _ in range(count)]
        self.devices.devices.extend(devices)
        return devices

    def test_partial_device_failure(self, mock_log, mock_print):
        """Three devices, gateway returns [ok, ok, error]"""
        devices = self._add_devices(3)
        self.gateway.outcomes = {devices[2].token: "error"}

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertTrue(result.success)
        self.assertEqual(result.sent, 2)
        self.assertEqual(result.failed, 1)

        records = self.notifications.for_user(USER_ID)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].type, "mood_reminder")
        self.assertEqual(records[0].sent_at, self.clock.now)

    def test_no_devices_records_nothing(self, mock_log, mock_print):
        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertTrue(result.success)
        self.assertEqual((result.sent, result.failed), (0, 0))
        self.assertEqual(self.notifications.records, [])
        self.assertEqual(self.gateway.batches, [])

    def test_invalid_tokens_are_skipped(self, mock_log, mock_print):
        self.devices.devices.append(create_test_device(user_id=USER_ID, token="garbage"))
        valid = self._add_devices(1)

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertEqual(result.sent, 1)
        self.assertEqual([m.to for m in self.gateway.messages], [valid[0].token])

    def test_inactive_devices_ignored(self, mock_log, mock_print):
        self.devices.devices.append(create_test_device(user_id=USER_ID, active=False))

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertEqual((result.sent, result.failed), (0, 0))

    def test_all_devices_fail_records_unsent(self, mock_log, mock_print):
        devices = self._add_devices(2)
        self.gateway.outcomes = {d.token: "error" for d in devices}

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertTrue(result.success)
        self.assertEqual((result.sent, result.failed), (0, 2))
        records = self.notifications.for_user(USER_ID)
        self.assertEqual(len(records), 1)
        self.assertIsNone(records[0].sent_at)

    def test_unknown_template(self, mock_log, mock_print):
        self._add_devices(1)

        result = self.dispatcher.send_to_user(USER_ID, "does_not_exist")

        self.assertFalse(result.success)
        self.assertIn("does_not_exist", result.error)
        self.assertEqual(self.gateway.batches, [])

    def test_message_content(self, mock_log, mock_print):
        self._add_devices(1)

        self.dispatcher.send_to_user(USER_ID, "savings_celebration", {"savingsAmount": 25})

        message = self.gateway.messages[0]
        self.assertEqual(message.body, "You've saved 25 this week. Keep up the excellent work!")
        self.assertEqual(message.data["templateId"], "savings_celebration")
        self.assertEqual(message.data["userId"], USER_ID)
        self.assertEqual(message.data["action"], "view_savings")
        self.assertEqual(message.data["timestamp"], self.clock.now.isoformat())
        self.assertEqual(message.category, "achievement")

    def test_user_name_from_directory(self, mock_log, mock_print):
        self._add_devices(1)

        self.dispatcher.send_to_user(USER_ID, "focus_reminder")

        self.assertEqual(self.gateway.messages[0].title, "Ready to focus, Ana?")

    def test_user_name_fallback(self, mock_log, mock_print):
        self._add_devices(1, user_id="anonymous")

        self.dispatcher.send_to_user("anonymous", "focus_reminder")

        self.assertEqual(self.gateway.messages[0].title, "Ready to focus, there?")

    def test_context_overrides_user_name(self, mock_log, mock_print):
        self._add_devices(1)

        self.dispatcher.send_to_user(USER_ID, "focus_reminder", {"userName": "Dr. Ana"})

        self.assertEqual(self.gateway.messages[0].title, "Ready to focus, Dr. Ana?")

    def test_high_priority_template(self, mock_log, mock_print):
        self._add_devices(1)

        self.dispatcher.send_to_user(USER_ID, "crisis_support")

        self.assertEqual(self.gateway.messages[0].priority, "high")

    def test_chunking_by_gateway_limit(self, mock_log, mock_print):
        self.gateway.max_batch_size = 2
        self._add_devices(5)

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertEqual([len(b) for b in self.gateway.batches], [2, 2, 1])
        self.assertEqual(result.sent, 5)
        self.assertEqual(len(self.notifications.records), 1)

    def test_failed_chunk_does_not_stop_others(self, mock_log, mock_print):
        self.gateway.max_batch_size = 2
        self.gateway.fail_batches = {0}
        self._add_devices(3)

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertTrue(result.success)
        self.assertEqual((result.sent, result.failed), (1, 2))
        self.assertEqual(len(self.gateway.batches), 2)
        mock_log.assert_called_once()
        self.assertEqual(mock_log.call_args.kwargs["error_type"], "delivery")

    def test_gateway_timeout_counts_chunk_as_failed(self, mock_log, mock_print):
        devices = self._add_devices(2)
        self.gateway.raises = {devices[0].token: TimeoutError("socket timed out")}

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertTrue(result.success)
        self.assertEqual((result.sent, result.failed), (0, 2))
        records = self.notifications.for_user(USER_ID)
        self.assertEqual(len(records), 1)
        self.assertIsNone(records[0].sent_at)
        self.assertEqual(
            mock_log.call_args.kwargs["error_message"], "TimeoutError: socket timed out"
        )

    def test_storage_failure(self, mock_log, mock_print):
        self._add_devices(1)
        self.notifications.fail_on_create = True

        result = self.dispatcher.send_to_user(USER_ID, "mood_reminder")

        self.assertFalse(result.success)
        self.assertIn("unavailable", result.error)


@patch("builtins.print")
class TestSendToUsers(unittest.TestCase):
    """Tests for DeliveryDispatcher.send_to_users()"""

    def _dispatcher(self, max_workers):
        self.devices = InMemoryDeviceStore()
        self.notifications = InMemoryNotificationStore()
        self.gateway = ScriptedPushGateway()
        return DeliveryDispatcher(
            TemplateRegistry.from_catalog(),
            self.gateway,
            self.devices,
            self.notifications,
            InMemoryUserDirectory(),
            clock=FixedClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)),
            max_workers=max_workers,
        )

    def test_aggregates_results(self, mock_print):
        dispatcher = self._dispatcher(max_workers=1)
        self.devices.devices.extend(
            [create_test_device(user_id="a"), create_test_device(user_id="a"), create_test_device(user_id="b")]
        )

        summary = dispatcher.send_to_users(["a", "b", "c", "a"], "mood_reminder")

        self.assertTrue(summary.success)
        self.assertEqual(summary.total_sent, 3)
        self.assertEqual(summary.total_failed, 0)
        self.assertEqual(list(summary.results), ["a", "b", "c"])
        self.assertEqual(summary.results["c"].sent, 0)
        self.assertEqual(len(self.notifications.records), 2)

    def test_parallel_fan_out(self, mock_print):
        dispatcher = self._dispatcher(max_workers=4)
        user_ids = [f"user_{i}" for i in range(6)]
        self.devices.devices.extend(create_test_device(user_id=uid) for uid in user_ids)

        summary = dispatcher.send_to_users(user_ids, "journal_reminder")

        self.assertEqual(summary.total_sent, 6)
        self.assertEqual(set(summary.results), set(user_ids))

    def test_unknown_template_marks_failure(self, mock_print):
        dispatcher = self._dispatcher(max_workers=1)

        summary = dispatcher.send_to_users(["a"], "nope")

        self.assertFalse(summary.success)


@patch("builtins.print")
class TestScheduledNotifications(unittest.TestCase):
    """Tests for schedule_notification() and process_scheduled_notifications()"""

    def setUp(self):
        self.clock = FixedClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
        self.devices = InMemoryDeviceStore([create_test_device(user_id=USER_ID)])
        self.notifications = InMemoryNotificationStore()
        self.scheduled = InMemoryScheduledStore()
        self.dispatcher = DeliveryDispatcher(
            TemplateRegistry.from_catalog(),
            ScriptedPushGateway(),
            self.devices,
            self.notifications,
            InMemoryUserDirectory(),
            scheduled=self.scheduled,
            clock=self.clock,
            max_workers=1,
        )

    def test_schedule_unknown_template(self, mock_print):
        with self.assertRaises(ConfigurationError):
            self.dispatcher.schedule_notification(USER_ID, "nope", self.clock.now)

    def test_due_items_sent_once(self, mock_print):
        self.dispatcher.schedule_notification(
            USER_ID, "savings_celebration", self.clock.now - timedelta(minutes=1), {"savingsAmount": 12}
        )
        self.dispatcher.schedule_notification(
            USER_ID, "mood_reminder", self.clock.now + timedelta(hours=1)
        )

        first = self.dispatcher.process_scheduled_notifications()
        second = self.dispatcher.process_scheduled_notifications()

        self.assertEqual(first, {"sent": 1, "failed": 0, "skipped": 0})
        self.assertEqual(second, {"sent": 0, "failed": 0, "skipped": 0})
        self.assertEqual(len(self.notifications.records), 1)
        self.assertIn("12", self.notifications.records[0].body)

    def test_future_item_fires_when_due(self, mock_print):
        self.dispatcher.schedule_notification(
            USER_ID, "mood_reminder", self.clock.now + timedelta(hours=1)
        )

        self.clock.advance(hours=1)
        stats = self.dispatcher.process_scheduled_notifications()

        self.assertEqual(stats["sent"], 1)
        self.assertTrue(all(item.sent for item in self.scheduled.items.values()))

    def test_claimed_item_skipped(self, mock_print):
        item = self.dispatcher.schedule_notification(USER_ID, "mood_reminder", self.clock.now)

        with patch.object(self.scheduled, "mark_sent", return_value=False):
            stats = self.dispatcher.process_scheduled_notifications()

        self.assertEqual(stats["skipped"], 1)
        self.assertFalse(self.scheduled.items[item.id].sent)
        self.assertEqual(self.notifications.records, [])

    def test_without_scheduled_store(self, mock_print):
        self.dispatcher.scheduled = None

        self.assertEqual(
            self.dispatcher.process_scheduled_notifications(),
            {"sent": 0, "failed": 0, "skipped": 0},
        )


@patch("builtins.print")
class TestCleanupOldNotifications(unittest.TestCase):
    """Tests for cleanup_old_notifications()"""

    def test_deletes_records_older_than_retention(self, mock_print):
        now = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)
        notifications = InMemoryNotificationStore(
            [
                create_test_record(created_at=now - timedelta(days=45)),
                create_test_record(created_at=now - timedelta(days=31)),
                create_test_record(created_at=now - timedelta(days=2)),
            ]
        )
        dispatcher = DeliveryDispatcher(
            TemplateRegistry.from_catalog(),
            ScriptedPushGateway(),
            InMemoryDeviceStore(),
            notifications,
            InMemoryUserDirectory(),
            clock=FixedClock(now),
            max_workers=1,
        )

        result = dispatcher.cleanup_old_notifications(retention_days=30)

        self.assertEqual(result, {"deleted": 2})
        self.assertEqual(len(notifications.records), 1)


if __name__ == "__main__":
    unittest.main()
