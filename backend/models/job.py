"""Pydantic models for scheduled jobs."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class JobSchedule(BaseModel):
    """
    Cron-style trigger predicate evaluated against the scheduler clock.

    Fields use APScheduler cron syntax. Unset fields match every value.
    """

    model_config = ConfigDict(frozen=True)

    minute: str = "*"
    hour: str = "*"
    day: str = "*"
    day_of_week: str = "*"

    @property
    def expression(self) -> str:
        """Human-readable `minute hour day * day_of_week` form."""
        return f"{self.minute} {self.hour} {self.day} * {self.day_of_week}"


class JobStatus(BaseModel):
    """Operational snapshot of one registered job."""

    name: str
    schedule: str
    running: bool = False
    next_run: datetime | None = None
    runs: int = 0
    failures: int = 0
    last_error: str | None = None
    last_result: dict[str, Any] | None = None


class JobRunResult(BaseModel):
    """Outcome of a single handler invocation."""

    name: str
    status: Literal["succeeded", "failed", "skipped"]
    started_at: datetime
    finished_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
