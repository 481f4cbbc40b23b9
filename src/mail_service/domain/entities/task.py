from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from mail_service.domain.value_objects.enums import Priority


@dataclass(slots=True)
class QueuedTask:
    """One email-send request owned by the queue until it is delivered or dropped."""

    id: UUID
    template_id: str
    parameters: dict[str, Any]
    priority: Priority
    max_attempts: int
    enqueued_at: datetime
    attempts: int = 0
    last_error: str | None = field(default=None, repr=False)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts
