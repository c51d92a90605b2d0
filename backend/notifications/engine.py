"""
Wiring for the notification engine.

Builds every component from explicit dependencies so each process (or test)
gets its own independent instance. Running more than one engine against the
same database will double-send; there is no leader election.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import partial

from supabase import Client

from notifications.campaigns import CampaignRunner
from notifications.dispatcher import DeliveryDispatcher
from notifications.eligibility import EligibilityEngine
from notifications.jobs import register_notification_jobs
from notifications.preferences import PreferenceService
from notifications.push_gateway import ExpoPushGateway, PushGateway
from notifications.reminder_matcher import ReminderMatcher
from notifications.scheduler import NotificationScheduler
from notifications.stores import (
    DeviceStore,
    NotificationStore,
    PreferenceStore,
    ScheduledNotificationStore,
    UserDirectory,
)
from notifications.templates import TemplateRegistry
from shared.db import get_supabase_client
from shared.utils import get_notification_timezone, now_in_timezone


@dataclass
class NotificationEngine:
    templates: TemplateRegistry
    preferences: PreferenceService
    eligibility: EligibilityEngine
    dispatcher: DeliveryDispatcher
    reminders: ReminderMatcher
    campaigns: CampaignRunner
    devices: DeviceStore
    scheduler: NotificationScheduler


def create_notification_engine(
    client: Client | None = None,
    gateway: PushGateway | None = None,
    clock: Callable[[], datetime] | None = None,
) -> NotificationEngine:
    """Build a fully wired engine. Nothing is started."""
    client = client or get_supabase_client()
    timezone = get_notification_timezone()
    clock = clock or partial(now_in_timezone, timezone)

    templates = TemplateRegistry.from_catalog()
    preference_store = PreferenceStore(client)
    devices = DeviceStore(client)
    notifications = NotificationStore(client)
    users = UserDirectory(client)

    preferences = PreferenceService(preference_store)
    eligibility = EligibilityEngine(preferences, notifications, clock=clock)
    dispatcher = DeliveryDispatcher(
        templates,
        gateway or ExpoPushGateway(),
        devices,
        notifications,
        users,
        scheduled=ScheduledNotificationStore(client),
        clock=clock,
    )
    reminders = ReminderMatcher(preferences, eligibility, dispatcher, clock=clock)
    campaigns = CampaignRunner(eligibility, dispatcher, users, clock=clock)

    scheduler = NotificationScheduler(timezone=timezone)
    register_notification_jobs(scheduler, dispatcher, reminders, campaigns)

    return NotificationEngine(
        templates=templates,
        preferences=preferences,
        eligibility=eligibility,
        dispatcher=dispatcher,
        reminders=reminders,
        campaigns=campaigns,
        devices=devices,
        scheduler=scheduler,
    )
