# This module defines the built-in notification catalog as module-level constants.
# Templates describe what a push looks like; default preferences describe which
# notification types exist and when a user receives them out of the box.
# Condition keys name the context value they are checked against: numbers are
# minimums, booleans and strings must match exactly.

# Push templates, keyed by id. ${key} tokens are filled from the send context.
TEMPLATES = [
    {
        "id": "mood_reminder",
        "name": "Mood Check-in Reminder",
        "title": "How are you feeling?",
        "body": "Take a moment to check in with your mood. It only takes 30 seconds!",
        "data": {"type": "mood_reminder", "action": "check_mood"},
        "category": "reminder",
    },
    {
        "id": "journal_reminder",
        "name": "Journal Reminder",
        "title": "Time to reflect",
        "body": "Capture your thoughts and feelings in your journal. What made today special?",
        "data": {"type": "journal_reminder", "action": "open_journal"},
        "category": "reminder",
    },
    {
        "id": "sleep_reminder",
        "name": "Sleep Reminder",
        "title": "Wind down time",
        "body": "Your optimal bedtime is approaching. Start your wind-down routine for better sleep.",
        "data": {"type": "sleep_reminder", "action": "sleep_tracking"},
        "category": "reminder",
    },
    {
        "id": "focus_reminder",
        "name": "Focus Session Reminder",
        "title": "Ready to focus, ${userName}?",
        "body": "A short focus session now keeps you on track with your goals.",
        "data": {"type": "focus_reminder", "action": "start_focus"},
        "category": "reminder",
    },
    {
        "id": "data_export_reminder",
        "name": "Data Export Reminder",
        "title": "Keep a copy of your data",
        "body": "It has been a while since your last export. Download your entries anytime from Settings.",
        "data": {"type": "data_export_reminder", "action": "export_data"},
        "category": "reminder",
    },
    {
        "id": "savings_celebration",
        "name": "Savings Celebration",
        "title": "Great job saving!",
        "body": "You've saved ${savingsAmount} this week. Keep up the excellent work!",
        "data": {"type": "savings_celebration", "action": "view_savings"},
        "category": "achievement",
    },
    {
        "id": "mood_insight",
        "name": "Mood Insight",
        "title": "Your mood pattern",
        "body": "I noticed a pattern in your recent moods. Here's a personalized insight!",
        "data": {"type": "mood_insight", "action": "view_insights"},
        "category": "insight",
    },
    {
        "id": "weather_mood_insight",
        "name": "Weather-Mood Insight",
        "title": "Weather and your mood",
        "body": "Your mood tends to shift with the weather. See how ${weather} days affect you.",
        "data": {"type": "weather_mood_insight", "action": "view_insights"},
        "category": "insight",
    },
    {
        "id": "sleep_insight",
        "name": "Sleep Quality Insight",
        "title": "Your sleep patterns",
        "body": "You averaged ${sleepHours}h of sleep recently. Tap to see what helps you rest.",
        "data": {"type": "sleep_insight", "action": "view_insights"},
        "category": "insight",
    },
    {
        "id": "energy_insight",
        "name": "Energy Level Insight",
        "title": "Your energy patterns",
        "body": "Your energy peaks at certain times of day. Find out when you're at your best.",
        "data": {"type": "energy_insight", "action": "view_insights"},
        "category": "insight",
    },
    {
        "id": "location_alert",
        "name": "Location Spending Alert",
        "title": "Spending alert",
        "body": "You're near expensive stores and your mood is low. Consider waiting before making purchases.",
        "data": {"type": "location_alert", "action": "view_intervention"},
        "priority": "high",
        "category": "intervention",
    },
    {
        "id": "weekly_summary",
        "name": "Weekly Summary",
        "title": "Your week in review",
        "body": "Check out your weekly insights: ${mood} average mood, ${sleepHours}h sleep, ${savingsAmount} saved.",
        "data": {"type": "weekly_summary", "action": "view_summary"},
        "category": "summary",
    },
    {
        "id": "goal_reminder",
        "name": "Goal Reminder",
        "title": "Progress check",
        "body": "How are you progressing toward your goals? Take a moment to update your progress.",
        "data": {"type": "goal_reminder", "action": "update_goals"},
        "category": "goal",
    },
    {
        "id": "crisis_support",
        "name": "Crisis Support",
        "title": "I'm here for you",
        "body": "I noticed you might be struggling. Remember, you're not alone. Here are some resources.",
        "data": {"type": "crisis_support", "action": "crisis_help"},
        "priority": "high",
        "category": "support",
    },
    {
        "id": "subscription_upgrade",
        "name": "Subscription Upgrade",
        "title": "Unlock more features",
        "body": "You've been using Lyra for a while. Upgrade to Pro for advanced insights and features.",
        "data": {"type": "subscription_upgrade", "action": "upgrade"},
        "category": "promotion",
    },
]

# Notification types a user can receive, with their out-of-the-box settings.
DEFAULT_PREFERENCES = [
    {
        "id": "mood_reminder",
        "name": "Mood Check-in Reminders",
        "description": "Daily reminders to log your mood",
        "category": "reminder",
        "enabled": True,
        "frequency": "daily",
        "time": "09:00",
        "conditions": {},
    },
    {
        "id": "journal_reminder",
        "name": "Journal Reminders",
        "description": "Reminders to write in your journal",
        "category": "reminder",
        "enabled": True,
        "frequency": "daily",
        "time": "21:00",
        "conditions": {},
    },
    {
        "id": "sleep_reminder",
        "name": "Sleep Reminders",
        "description": "Bedtime reminders for better sleep",
        "category": "reminder",
        "enabled": True,
        "frequency": "daily",
        "time": "22:00",
        "conditions": {},
    },
    {
        "id": "savings_celebration",
        "name": "Savings Celebrations",
        "description": "Celebrate your savings achievements",
        "category": "achievement",
        "enabled": True,
        "frequency": "weekly",
        "conditions": {"savingsAmount": 10},
    },
    {
        "id": "mood_insight",
        "name": "Mood Insights",
        "description": "Personalized insights about your mood patterns",
        "category": "insight",
        "enabled": True,
        "frequency": "weekly",
        "conditions": {"dataPoints": 7},
    },
    {
        "id": "location_alert",
        "name": "Location Spending Alerts",
        "description": "Alerts when near expensive stores with low mood",
        "category": "intervention",
        "enabled": True,
        "frequency": "immediate",
        "conditions": {"nearExpensiveStore": True, "lowMood": True},
    },
    {
        "id": "weekly_summary",
        "name": "Weekly Summary",
        "description": "Weekly overview of your progress",
        "category": "insight",
        "enabled": True,
        "frequency": "weekly",
        "time": "10:00",
        "conditions": {},
    },
    {
        "id": "goal_reminder",
        "name": "Goal Progress Reminders",
        "description": "Reminders to update your goal progress",
        "category": "reminder",
        "enabled": True,
        "frequency": "weekly",
        "time": "11:00",
        "conditions": {"hasActiveGoals": True},
    },
    {
        "id": "crisis_support",
        "name": "Crisis Support",
        "description": "Support notifications during difficult times",
        "category": "support",
        "enabled": True,
        "frequency": "immediate",
        "conditions": {"consecutiveLowMoodDays": 3},
    },
    {
        "id": "subscription_upgrade",
        "name": "Subscription Promotions",
        "description": "Information about premium features",
        "category": "promotion",
        "enabled": False,
        "frequency": "monthly",
        "conditions": {"isFreeUser": True, "usageDays": 7},
    },
    {
        "id": "weather_mood_insight",
        "name": "Weather-Mood Insights",
        "description": "Insights about weather and mood correlation",
        "category": "insight",
        "enabled": True,
        "frequency": "weekly",
        "conditions": {"hasWeatherData": True, "dataPoints": 14},
    },
    {
        "id": "sleep_insight",
        "name": "Sleep Quality Insights",
        "description": "Insights about your sleep patterns",
        "category": "insight",
        "enabled": True,
        "frequency": "weekly",
        "conditions": {"hasSleepData": True, "dataPoints": 7},
    },
    {
        "id": "energy_insight",
        "name": "Energy Level Insights",
        "description": "Insights about your energy patterns",
        "category": "insight",
        "enabled": True,
        "frequency": "weekly",
        "conditions": {"hasEnergyData": True, "dataPoints": 7},
    },
    {
        "id": "focus_reminder",
        "name": "Focus Session Reminders",
        "description": "Reminders to start focus sessions",
        "category": "reminder",
        "enabled": True,
        "frequency": "daily",
        "time": "14:00",
        "conditions": {"hasFocusGoals": True},
    },
    {
        "id": "data_export_reminder",
        "name": "Data Export Reminders",
        "description": "Reminders to export your data",
        "category": "reminder",
        "enabled": False,
        "frequency": "monthly",
        "conditions": {"hasData": True, "daysSinceLastExport": 30},
    },
]

# Global settings applied until the user changes them.
DEFAULT_GLOBAL_SETTINGS = {
    "enabled": True,
    "quiet_hours": {"start": "22:00", "end": "08:00"},
    "max_per_day": 10,
    "priority_level": "normal",
}
