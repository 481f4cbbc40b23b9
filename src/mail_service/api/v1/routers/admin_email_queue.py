from __future__ import annotations

from fastapi import APIRouter, Query

from mail_service.api.deps import CurrentAdmin, EmailQueueDep
from mail_service.api.v1.schemas.email_queue import (
    PendingEmailResponse,
    QueueStatusResponse,
    TestEmailRequest,
)
from mail_service.services import email_service

router = APIRouter(prefix="/api/v1/admin/email-queue", tags=["admin"])


@router.get("/status", response_model=QueueStatusResponse)
async def get_status(admin: CurrentAdmin, queue: EmailQueueDep) -> QueueStatusResponse:
    return QueueStatusResponse.model_validate(queue.get_status())


@router.get("/pending", response_model=list[PendingEmailResponse])
async def list_pending(
    admin: CurrentAdmin,
    queue: EmailQueueDep,
    limit: int = Query(50, ge=1, le=500),
) -> list[PendingEmailResponse]:
    tasks = queue.pending_tasks()[:limit]
    return [PendingEmailResponse.model_validate(t) for t in tasks]


@router.post("/test", response_model=QueueStatusResponse, status_code=202)
async def send_test_email(
    body: TestEmailRequest,
    admin: CurrentAdmin,
    queue: EmailQueueDep,
) -> QueueStatusResponse:
    """Queue a welcome email to ``body.email`` to check delivery end to end."""
    email_service.send_welcome(body.email, body.name, queue)
    return QueueStatusResponse.model_validate(queue.get_status())
