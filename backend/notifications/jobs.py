"""
The nine recurring notification jobs and their trigger times.

Trigger times are evaluated in NOTIFICATION_TIMEZONE.
"""

from models.job import JobSchedule
from notifications.campaigns import CampaignRunner
from notifications.dispatcher import DeliveryDispatcher
from notifications.reminder_matcher import ReminderMatcher
from notifications.scheduler import NotificationScheduler

EVERY_MINUTE = JobSchedule()

JOB_SCHEDULES: dict[str, JobSchedule] = {
    "process-scheduled": EVERY_MINUTE,
    "send-reminders": EVERY_MINUTE,
    "send-contextual": JobSchedule(minute="*/5"),
    "weekly-summary": JobSchedule(minute="0", hour="10", day_of_week="mon"),
    "monthly-insights": JobSchedule(minute="0", hour="9", day="1"),
    "cleanup-notifications": JobSchedule(minute="0", hour="2"),
    "subscription-reminders": JobSchedule(minute="0", hour="15", day_of_week="fri"),
    "goal-reminders": JobSchedule(minute="0", hour="11", day_of_week="tue"),
    "crisis-check": JobSchedule(minute="0", hour="18"),
}


def register_notification_jobs(
    scheduler: NotificationScheduler,
    dispatcher: DeliveryDispatcher,
    reminder_matcher: ReminderMatcher,
    campaigns: CampaignRunner,
) -> NotificationScheduler:
    """Register every notification job on the scheduler."""
    handlers = {
        "process-scheduled": dispatcher.process_scheduled_notifications,
        "send-reminders": reminder_matcher.run,
        "send-contextual": campaigns.send_contextual_notifications,
        "weekly-summary": campaigns.send_weekly_summaries,
        "monthly-insights": campaigns.send_monthly_insights,
        "cleanup-notifications": dispatcher.cleanup_old_notifications,
        "subscription-reminders": campaigns.send_subscription_reminders,
        "goal-reminders": campaigns.send_goal_reminders,
        "crisis-check": campaigns.send_crisis_support_checks,
    }

    for name, schedule in JOB_SCHEDULES.items():
        scheduler.register_job(name, schedule, handlers[name])

    return scheduler
