"""Pydantic models for notification system."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from models.types import (
    ClockTime,
    ConditionValue,
    DeviceID,
    NotificationContext,
    NotificationID,
    NotificationType,
    TemplateID,
    UserID,
)

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

Category = Literal[
    "reminder",
    "insight",
    "intervention",
    "achievement",
    "support",
    "promotion",
    "summary",
    "goal",
]
Priority = Literal["default", "normal", "high"]
PriorityLevel = Literal["low", "normal", "high"]
Frequency = Literal["immediate", "daily", "weekly", "monthly"]


class Template(BaseModel):
    """Push notification blueprint with ${key} placeholders."""

    model_config = ConfigDict(frozen=True)

    id: TemplateID
    name: str = Field(..., min_length=1)
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    sound: Literal["default", "none"] = "default"
    priority: Priority = "normal"
    category: Category


class Preference(BaseModel):
    """Per-user preference for one notification type."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: NotificationType
    name: str = ""
    description: str = ""
    category: Category
    enabled: bool = True
    frequency: Frequency | None = None
    time: ClockTime | None = Field(None, pattern=HHMM_PATTERN)
    conditions: dict[str, ConditionValue] = Field(default_factory=dict)


class QuietHours(BaseModel):
    """Daily do-not-disturb window. May wrap past midnight."""

    start: ClockTime = Field("22:00", pattern=HHMM_PATTERN)
    end: ClockTime = Field("08:00", pattern=HHMM_PATTERN)


class GlobalSettings(BaseModel):
    """Settings that apply to every notification type for a user."""

    enabled: bool = True
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    max_per_day: int = Field(10, ge=0)
    priority_level: PriorityLevel = "normal"


class UserPreferences(BaseModel):
    """Catalog defaults merged with a user's stored customizations."""

    user_id: UserID
    preferences: list[Preference] = Field(default_factory=list)
    global_settings: GlobalSettings = Field(default_factory=GlobalSettings)

    def find(self, notification_type: NotificationType) -> Preference | None:
        for preference in self.preferences:
            if preference.id == notification_type:
                return preference
        return None


class Device(BaseModel):
    """Registered push device. Unregistering deactivates, never deletes."""

    id: DeviceID | None = None
    user_id: UserID
    token: str = Field(..., min_length=1)
    platform: str
    device_model: str | None = None
    active: bool = True
    last_seen: datetime | None = None


class NotificationRecord(BaseModel):
    """One row per logical send, regardless of device count."""

    id: NotificationID | None = None
    user_id: UserID
    title: str
    body: str
    type: NotificationType
    sent_at: datetime | None = None
    read_at: datetime | None = None
    created_at: datetime

    @property
    def is_sent(self) -> bool:
        return self.sent_at is not None


class ScheduledNotification(BaseModel):
    """Deferred one-shot send. Moves from unsent to sent exactly once."""

    id: str | None = None
    user_id: UserID
    template_id: TemplateID
    scheduled_for: datetime
    sent: bool = False
    sent_at: datetime | None = None
    context: NotificationContext = Field(default_factory=dict)


class SendResult(BaseModel):
    """Outcome of sending one template to one user."""

    success: bool
    sent: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    error: str | None = None


class BulkSendResult(BaseModel):
    """Aggregated outcome of a fan-out send."""

    success: bool = True
    total_sent: int = 0
    total_failed: int = 0
    results: dict[str, SendResult] = Field(default_factory=dict)
