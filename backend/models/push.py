"""Pydantic models for the push gateway wire format."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class PushMessage(BaseModel):
    """Single message addressed to one device token."""

    to: str
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    sound: Literal["default", "none"] = "default"
    priority: Literal["default", "normal", "high"] = "normal"
    category: str | None = None


class PushTicket(BaseModel):
    """Gateway's per-message delivery outcome."""

    status: Literal["ok", "error"]
    id: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"
