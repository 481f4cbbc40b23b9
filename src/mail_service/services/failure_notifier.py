"""Publishes permanently failed emails so operators can alert on them."""
from __future__ import annotations

import logging

from mail_service.application.dto.delivery import DeliveryOutcome
from mail_service.application.ports.delivery import EventPublisher
from mail_service.domain.entities.task import QueuedTask
from mail_service.domain.value_objects.enums import DeliveryStatus

logger = logging.getLogger(__name__)

DELIVERY_FAILED_EVENT = "email.delivery_failed"


class FailureNotifier:
    """DeliveryObserver that forwards ``failed`` outcomes to an event channel."""

    def __init__(self, publisher: EventPublisher, channel: str) -> None:
        self._publisher = publisher
        self._channel = channel

    async def on_outcome(self, task: QueuedTask, outcome: DeliveryOutcome) -> None:
        if outcome.status != DeliveryStatus.FAILED:
            return
        await self._publisher.publish(
            self._channel,
            {
                "event_type": DELIVERY_FAILED_EVENT,
                "task_id": str(outcome.task_id),
                "template_id": outcome.template_id,
                "attempts": outcome.attempts,
                "error": outcome.error,
                "recipient": task.parameters.get("recipient_email"),
                "priority": str(task.priority),
                "enqueued_at": task.enqueued_at.isoformat(),
            },
        )
        logger.info("Published %s for email %s", DELIVERY_FAILED_EVENT, outcome.task_id)
