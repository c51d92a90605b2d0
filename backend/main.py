import os
import time
from datetime import datetime
from dotenv import load_dotenv
from notifications.engine import create_notification_engine

load_dotenv()

# Seconds between status lines while the scheduler runs
STATUS_INTERVAL = int(os.getenv("SCHEDULER_STATUS_INTERVAL", "3600"))


def run_notification_scheduler():
    """Main processing function"""

    print(f"[{datetime.now()}] Starting notification scheduler...")

    engine = create_notification_engine()
    engine.scheduler.start()

    try:
        while True:
            time.sleep(STATUS_INTERVAL)
            for status in engine.scheduler.get_status():
                print(
                    f"  {status.name}: runs={status.runs} failures={status.failures} "
                    f"next={status.next_run}"
                )
    except KeyboardInterrupt:
        print("Shutting down...")
    finally:
        engine.scheduler.stop()

    print(f"\n[{datetime.now()}] Complete!")

if __name__ == "__main__":
    run_notification_scheduler()
