"""
Job scheduler for recurring notification work.

Jobs are registered by name with a cron-style JobSchedule and a handler.
Every invocation, scheduled or manual, goes through the same wrapper:

- a job never runs twice at once (a second invocation is skipped)
- a handler exception is caught, counted and logged for that job only,
  so one broken job cannot stop or delay the others
- the handler's returned stats are kept as the job's last result

stop() only prevents future ticks. A handler that is already executing
runs to completion; callers needing a hard deadline must add their own.
"""

import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from models.job import JobRunResult, JobSchedule, JobStatus
from notifications.error_logger import log_notification_error
from notifications.errors import ConfigurationError, DuplicateJobError
from shared.utils import get_notification_timezone

JobHandler = Callable[[], dict[str, Any] | None]


class RegisteredJob:
    """A named job plus its run bookkeeping."""

    def __init__(self, name: str, schedule: JobSchedule, handler: JobHandler):
        self.name = name
        self.schedule = schedule
        self.handler = handler
        self.lock = threading.Lock()
        self.runs = 0
        self.failures = 0
        self.last_error: str | None = None
        self.last_result: dict[str, Any] | None = None

    @property
    def running(self) -> bool:
        return self.lock.locked()


class JobRegistry:
    """Name-keyed collection of jobs owned by one scheduler."""

    def __init__(self) -> None:
        self._jobs: dict[str, RegisteredJob] = {}

    def register(self, name: str, schedule: JobSchedule, handler: JobHandler) -> RegisteredJob:
        if name in self._jobs:
            raise DuplicateJobError(f"Job {name} is already registered")
        job = RegisteredJob(name, schedule, handler)
        self._jobs[name] = job
        return job

    def get(self, name: str) -> RegisteredJob:
        job = self._jobs.get(name)
        if job is None:
            raise ConfigurationError(f"Job {name} not found")
        return job

    def names(self) -> list[str]:
        return list(self._jobs)

    def __iter__(self):
        return iter(self._jobs.values())

    def __len__(self) -> int:
        return len(self._jobs)


def build_trigger(schedule: JobSchedule, tz: ZoneInfo) -> CronTrigger:
    return CronTrigger(
        minute=schedule.minute,
        hour=schedule.hour,
        day=schedule.day,
        day_of_week=schedule.day_of_week,
        timezone=tz,
    )


class NotificationScheduler:
    """Starts, stops and runs a registry of recurring jobs."""

    def __init__(
        self,
        registry: JobRegistry | None = None,
        timezone: ZoneInfo | None = None,
        scheduler_factory: Callable[..., BackgroundScheduler] = BackgroundScheduler,
    ):
        self.registry = registry or JobRegistry()
        self.timezone = timezone or get_notification_timezone()
        self._scheduler_factory = scheduler_factory
        self._scheduler: BackgroundScheduler | None = None
        self._start_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def register_job(self, name: str, schedule: JobSchedule, handler: JobHandler) -> None:
        """Add a job. Raises DuplicateJobError if the name is taken."""
        self.registry.register(name, schedule, handler)
        if self._scheduler is not None:
            self._add_to_scheduler(self._scheduler, self.registry.get(name))
        print(f"Registered job {name} with schedule: {schedule.expression}")

    def _add_to_scheduler(self, backend: BackgroundScheduler, job: RegisteredJob) -> None:
        backend.add_job(
            func=self.run_job,
            trigger=build_trigger(job.schedule, self.timezone),
            args=[job.name],
            id=job.name,
            name=job.name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
        )

    def start(self) -> bool:
        """
        Activate every registered job.

        Returns False (and does nothing) if the scheduler is already running.
        """
        with self._start_lock:
            if self._scheduler is not None:
                print("  ⚠️  Notification scheduler is already running")
                return False

            backend = self._scheduler_factory(timezone=self.timezone)
            for job in self.registry:
                self._add_to_scheduler(backend, job)
            backend.start()
            # Only a started backend marks the scheduler as running
            self._scheduler = backend

        print(f"Notification scheduler started with {len(self.registry)} jobs")
        return True

    def stop(self) -> bool:
        """Deactivate every job. In-flight handlers are not interrupted."""
        with self._start_lock:
            if self._scheduler is None:
                print("  ⚠️  Notification scheduler is not running")
                return False
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        print("Notification scheduler stopped")
        return True

    def trigger_job(self, name: str) -> JobRunResult:
        """
        Run a job now, independent of its schedule.

        Raises ConfigurationError for an unknown job name. Handler failures
        are returned in the result, not raised.
        """
        self.registry.get(name)
        print(f"Manually triggering job: {name}")
        return self.run_job(name)

    def run_job(self, name: str) -> JobRunResult:
        """Invoke a job's handler with single-flight and failure isolation."""
        job = self.registry.get(name)
        started_at = datetime.now(self.timezone)

        if not job.lock.acquire(blocking=False):
            print(f"  ⊘ Job {name} is still running, skipping this invocation")
            return JobRunResult(name=name, status="skipped", started_at=started_at)

        try:
            job.runs += 1
            result = job.handler()
        except Exception as e:
            job.failures += 1
            job.last_error = f"{type(e).__name__}: {e}"
            error_file = log_notification_error(
                error_type="job",
                error_message=job.last_error,
                context={"job": name, "runs": job.runs, "failures": job.failures},
            )
            print(f"  ✗ Error in scheduled job {name}. Details logged to: {error_file}")
            return JobRunResult(
                name=name,
                status="failed",
                started_at=started_at,
                finished_at=datetime.now(self.timezone),
                error=job.last_error,
            )
        finally:
            job.lock.release()

        job.last_result = result
        return JobRunResult(
            name=name,
            status="succeeded",
            started_at=started_at,
            finished_at=datetime.now(self.timezone),
            result=result,
        )

    def _next_run(self, name: str) -> datetime | None:
        if self._scheduler is None:
            return None
        scheduled = self._scheduler.get_job(name)
        if scheduled is None:
            return None
        return scheduled.next_run_time

    def get_status(self) -> list[JobStatus]:
        """Registered jobs with counters and, while started, their next fire time."""
        return [
            JobStatus(
                name=job.name,
                schedule=job.schedule.expression,
                running=job.running,
                next_run=self._next_run(job.name),
                runs=job.runs,
                failures=job.failures,
                last_error=job.last_error,
                last_result=job.last_result,
            )
            for job in self.registry
        ]
