from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from mail_service.domain.value_objects.enums import DeliveryStatus


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Terminal result of a queued email."""

    task_id: UUID
    template_id: str
    status: DeliveryStatus
    attempts: int
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED


@dataclass(frozen=True, slots=True)
class QueueStatus:
    queue_length: int
    processing: bool
    in_flight: int = 0
    retry_scheduled: int = 0
