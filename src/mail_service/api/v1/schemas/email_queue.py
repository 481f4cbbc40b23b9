from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from mail_service.domain.value_objects.enums import Priority


class QueueStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    queue_length: int
    processing: bool
    in_flight: int
    retry_scheduled: int


class PendingEmailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    template_id: str
    priority: Priority
    attempts: int
    max_attempts: int
    enqueued_at: datetime


class TestEmailRequest(BaseModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    name: str = "Test Customer"
