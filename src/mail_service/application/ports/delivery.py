"""Collaborators of the email queue."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Protocol

from mail_service.application.dto.delivery import DeliveryOutcome
from mail_service.domain.entities.task import QueuedTask


class EmailDeliverer(Protocol):
    """Delivers one templated email.

    Returning ``False`` or raising are both delivery failures.
    """

    def send(self, template_id: str, parameters: dict[str, Any]) -> Awaitable[bool]: ...


class DeliveryObserver(Protocol):
    async def on_outcome(self, task: QueuedTask, outcome: DeliveryOutcome) -> None: ...


class EventPublisher(Protocol):
    """Fire-and-forget channel publish used to report delivery outcomes."""

    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """UTC wall clock used to stamp ``enqueued_at``."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
