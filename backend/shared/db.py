from supabase import create_client, Client
from dotenv import load_dotenv
import os

load_dotenv()

# Tables read and written by the notification engine
SETTINGS_TABLE = "notification_settings"
DEVICES_TABLE = "push_devices"
NOTIFICATIONS_TABLE = "notifications"
SCHEDULED_TABLE = "scheduled_notifications"
USERS_TABLE = "users"
SUBSCRIPTIONS_TABLE = "subscriptions"


def get_supabase_client(url: str | None = None, key: str | None = None) -> Client:
    """
    Get initialized Supabase client.

    The service key is required: the engine reads every user's settings and
    devices, which row-level security hides from the anon key.
    """
    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_SERVICE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set for the notification engine")

    return create_client(url, key)
