"""Pydantic models for data validation and type checking."""

from models.notification import (
    BulkSendResult,
    Device,
    GlobalSettings,
    NotificationRecord,
    Preference,
    QuietHours,
    ScheduledNotification,
    SendResult,
    Template,
    UserPreferences,
)
from models.push import PushMessage, PushTicket
from models.job import JobRunResult, JobSchedule, JobStatus

__all__ = [
    "Template",
    "Preference",
    "QuietHours",
    "GlobalSettings",
    "UserPreferences",
    "Device",
    "NotificationRecord",
    "ScheduledNotification",
    "SendResult",
    "BulkSendResult",
    "PushMessage",
    "PushTicket",
    "JobSchedule",
    "JobStatus",
    "JobRunResult",
]
