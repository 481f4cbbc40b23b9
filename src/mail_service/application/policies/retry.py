"""Retry policy for failed email deliveries."""
from __future__ import annotations

import random
from dataclasses import dataclass

from mail_service.domain.entities.task import QueuedTask
from mail_service.domain.value_objects.enums import Priority


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff with jitter, plus optional priority promotion.

    ``base_delay == 0`` retries immediately. ``promote_after`` moves a task one
    priority tier up once it has failed that many times.
    """

    base_delay: float = 0.0
    max_delay: float = 60.0
    jitter: float = 0.0
    promote_after: int | None = None

    def delay_for(self, attempts: int) -> float:
        if self.base_delay <= 0:
            return 0.0
        delay = min(self.base_delay * (2 ** max(attempts - 1, 0)), self.max_delay)
        if self.jitter > 0:
            delay *= random.uniform(1 - self.jitter, 1 + self.jitter)
        return max(delay, 0.0)

    def next_priority(self, task: QueuedTask) -> Priority:
        if self.promote_after is not None and task.attempts == self.promote_after:
            return task.priority.promoted()
        return task.priority
