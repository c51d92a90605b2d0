"""
Push gateway client (Expo push service).

Sends batches of messages in one HTTP call and returns one ticket per
message, in order. A failure of the whole call raises TransientDeliveryError;
it is never retried here, the next scheduled tick is the retry.
"""

import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from typing import Any

import requests
from pydantic import ValidationError

from models.push import PushMessage, PushTicket
from notifications.errors import TransientDeliveryError

EXPO_PUSH_URL = os.getenv("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send")

# Expo rejects requests with more than 100 messages
EXPO_MAX_BATCH_SIZE = 100

PUSH_TOKEN_PATTERN = re.compile(r"^Expo(nent)?PushToken\[.+\]$")
DEVICE_ID_PATTERN = re.compile(
    r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE
)


def is_push_token(token: Any) -> bool:
    """Check that a device token is syntactically valid for the gateway."""
    if not isinstance(token, str):
        return False
    return bool(PUSH_TOKEN_PATTERN.match(token) or DEVICE_ID_PATTERN.match(token))


def chunk_messages(
    messages: Sequence[PushMessage], size: int
) -> Iterator[list[PushMessage]]:
    """Split messages into consecutive chunks of at most `size`."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    for start in range(0, len(messages), size):
        yield list(messages[start : start + size])


class PushGateway(ABC):
    """Interface for anything that can deliver a batch of push messages."""

    max_batch_size: int = EXPO_MAX_BATCH_SIZE

    @abstractmethod
    def send(self, batch: Sequence[PushMessage]) -> list[PushTicket]:
        """Deliver one batch and return one ticket per message, in order."""


class ExpoPushGateway(PushGateway):
    """Delivers messages through the Expo push HTTP API."""

    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        access_token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.access_token = access_token or os.getenv("EXPO_ACCESS_TOKEN")
        self.timeout = timeout or float(os.getenv("PUSH_GATEWAY_TIMEOUT", "10"))
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def send(self, batch: Sequence[PushMessage]) -> list[PushTicket]:
        if not batch:
            return []
        if len(batch) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(batch)} exceeds gateway limit of {self.max_batch_size}"
            )

        payload = [message.model_dump(exclude_none=True) for message in batch]

        try:
            response = self.session.post(
                self.url, json=payload, headers=self._headers(), timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise TransientDeliveryError(f"Push gateway request failed: {e}") from e

        if not isinstance(body, dict):
            raise TransientDeliveryError(
                f"Push gateway returned {type(body).__name__}, expected an object"
            )

        if body.get("errors"):
            messages = "; ".join(
                err.get("message", "unknown") if isinstance(err, dict) else str(err)
                for err in body["errors"]
            )
            raise TransientDeliveryError(f"Push gateway rejected batch: {messages}")

        data = body.get("data") or []
        if not isinstance(data, list):
            raise TransientDeliveryError("Push gateway response has no ticket list")
        if len(data) != len(batch):
            raise TransientDeliveryError(
                f"Push gateway returned {len(data)} tickets for {len(batch)} messages"
            )

        try:
            return [PushTicket.model_validate(ticket) for ticket in data]
        except ValidationError as e:
            raise TransientDeliveryError(f"Push gateway returned malformed tickets: {e}") from e
