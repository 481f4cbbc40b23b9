"""In-process email dispatch queue: priority ordering, bounded concurrency, retries."""
from __future__ import annotations

import asyncio
import heapq
import inspect
import itertools
import logging
import uuid
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Iterable
from uuid import UUID

from mail_service.application.dto.delivery import DeliveryOutcome, QueueStatus
from mail_service.application.exceptions import QueueClosedError, ValidationError
from mail_service.application.policies.retry import RetryPolicy
from mail_service.application.ports.delivery import (
    Clock,
    DeliveryObserver,
    EmailDeliverer,
    SystemClock,
)
from mail_service.domain.entities.task import QueuedTask
from mail_service.domain.value_objects.enums import DeliveryStatus, Priority

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
DEFAULT_MAX_ATTEMPTS = 3

Sleep = Callable[[float], Awaitable[Any]]


class EmailQueue:
    """Dispatches queued emails to an :class:`EmailDeliverer`.

    ``enqueue`` never blocks: it pushes the task onto a heap ordered by
    ``(priority rank, sequence)``; on the next loop iteration as many
    deliveries start as there are free slots. Every finished delivery pulls
    the next task, so there is no polling. A failed task is pushed back with
    a fresh sequence number, i.e. behind everything already waiting in its
    tier, until ``max_attempts`` is reached.

    Must be used from within a running event loop.
    """

    def __init__(
        self,
        deliverer: EmailDeliverer,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        retry_policy: RetryPolicy | None = None,
        attempt_timeout: float | None = None,
        observers: Iterable[DeliveryObserver] = (),
        clock: Clock | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._deliverer = deliverer
        self._concurrency = concurrency
        self._retry_policy = retry_policy or RetryPolicy()
        self._attempt_timeout = attempt_timeout
        self._observers = list(observers)
        self._clock = clock or SystemClock()
        self._sleep = sleep

        self._backlog: list[tuple[int, int, QueuedTask]] = []
        self._seq = itertools.count()
        self._in_flight = 0
        self._processing = False
        self._closed = False
        self._pump_scheduled = False
        self._futures: dict[UUID, asyncio.Future[DeliveryOutcome]] = {}
        self._running: dict[UUID, tuple[QueuedTask, asyncio.Task[None]]] = {}
        self._retry_timers: dict[UUID, tuple[QueuedTask, asyncio.Task[None]]] = {}
        self._notifications: set[asyncio.Task[None]] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def closed(self) -> bool:
        return self._closed

    def add_observer(self, observer: DeliveryObserver) -> None:
        self._observers.append(observer)

    # -- public API -------------------------------------------------------

    def enqueue(
        self,
        template_id: str,
        parameters: Mapping[str, Any],
        priority: Priority | str = Priority.MEDIUM,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> asyncio.Future[DeliveryOutcome]:
        """Queue one email and return a future for its terminal outcome.

        The future is resolved exactly once, with a ``delivered``, ``failed``
        or ``cancelled`` outcome; it never raises. Callers may ignore it.
        """
        if self._closed:
            raise QueueClosedError("Email queue is closed")
        if not template_id:
            raise ValidationError("template_id must not be empty")
        if parameters is None:
            raise ValidationError("parameters must be provided")
        try:
            priority = Priority(priority)
        except ValueError:
            raise ValidationError(f"Unknown priority: {priority!r}") from None
        if max_attempts < 1:
            raise ValidationError("max_attempts must be >= 1")

        loop = asyncio.get_running_loop()
        task = QueuedTask(
            id=uuid.uuid4(),
            template_id=template_id,
            parameters=dict(parameters) if isinstance(parameters, Mapping) else parameters,
            priority=priority,
            max_attempts=max_attempts,
            enqueued_at=self._clock.now(),
        )
        future: asyncio.Future[DeliveryOutcome] = loop.create_future()
        self._futures[task.id] = future
        self._push(task)
        self._idle.clear()
        logger.debug(
            "Queued email %s (template=%s, priority=%s)",
            task.id, template_id, priority,
        )
        if not self._pump_scheduled:
            # Dispatch starts on the next loop iteration, after any same-tick enqueues.
            self._pump_scheduled = True
            loop.call_soon(self._scheduled_pump)
        return future

    def get_status(self) -> QueueStatus:
        return QueueStatus(
            queue_length=len(self._backlog) + len(self._retry_timers),
            processing=self._processing,
            in_flight=self._in_flight,
            retry_scheduled=len(self._retry_timers),
        )

    def pending_tasks(self) -> list[QueuedTask]:
        """Waiting tasks in dispatch order, then retries still waiting out their backoff."""
        queued = [task for _, _, task in sorted(self._backlog, key=lambda e: e[:2])]
        return queued + [task for task, _ in self._retry_timers.values()]

    async def join(self) -> None:
        """Wait until nothing is queued, in flight or waiting to be retried."""
        await self._idle.wait()
        if self._notifications:
            await asyncio.gather(*list(self._notifications), return_exceptions=True)

    async def close(self, *, cancel_pending: bool = False) -> None:
        """Stop accepting emails; drain the queue or cancel what is left."""
        self._closed = True
        if cancel_pending:
            while self._backlog:
                _, _, task = heapq.heappop(self._backlog)
                self._resolve(task, DeliveryStatus.CANCELLED, "queue closed")

            timers = list(self._retry_timers.values())
            workers = list(self._running.values())
            for _, handle in timers + workers:
                handle.cancel()
            await asyncio.gather(*(h for _, h in timers + workers), return_exceptions=True)

            # Handles cancelled before their first step never ran their cleanup.
            for task, _ in timers:
                if self._retry_timers.pop(task.id, None) is not None:
                    self._resolve(task, DeliveryStatus.CANCELLED, "queue closed")
            for task, _ in workers:
                if self._running.pop(task.id, None) is not None:
                    self._in_flight -= 1
                    self._resolve(task, DeliveryStatus.CANCELLED, "queue closed")
            self._refresh_idle()

        await self.join()
        logger.info("Email queue closed (cancel_pending=%s)", cancel_pending)

    # -- scheduling -------------------------------------------------------

    def _push(self, task: QueuedTask) -> None:
        heapq.heappush(self._backlog, (task.priority.rank, next(self._seq), task))

    def _scheduled_pump(self) -> None:
        self._pump_scheduled = False
        self._pump()

    def _pump(self) -> None:
        while self._backlog and self._in_flight < self._concurrency:
            _, _, task = heapq.heappop(self._backlog)
            self._in_flight += 1
            self._processing = True
            self._idle.clear()
            worker = asyncio.create_task(
                self._dispatch(task), name=f"email-dispatch-{task.id}"
            )
            self._running[task.id] = (task, worker)
        self._refresh_idle()

    def _refresh_idle(self) -> None:
        if not self._backlog and self._in_flight == 0 and not self._retry_timers:
            self._processing = False
            self._idle.set()

    async def _dispatch(self, task: QueuedTask) -> None:
        try:
            delivered, error = await self._attempt(task)
            if delivered:
                logger.info(
                    "Email %s delivered (template=%s, attempts=%d)",
                    task.id, task.template_id, task.attempts,
                )
                self._resolve(task, DeliveryStatus.DELIVERED)
            else:
                self._handle_failure(task, error)
        except asyncio.CancelledError:
            self._resolve(task, DeliveryStatus.CANCELLED, "delivery cancelled")
            raise
        except Exception:
            # Bookkeeping bug, not a delivery error: never leave the future pending.
            logger.exception("Email dispatch loop error for %s", task.id)
            self._resolve(task, DeliveryStatus.FAILED, "dispatch error")
        finally:
            if self._running.pop(task.id, None) is not None:
                self._in_flight -= 1
            self._pump()

    async def _attempt(self, task: QueuedTask) -> tuple[bool, str | None]:
        task.attempts += 1
        deadline = asyncio.timeout(self._attempt_timeout)
        try:
            result = self._deliverer.send(task.template_id, task.parameters)
            if inspect.isawaitable(result):
                async with deadline:
                    result = await result
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if isinstance(exc, TimeoutError) and deadline.expired():
                return False, f"timed out after {self._attempt_timeout}s"
            logger.warning(
                "Email %s attempt %d/%d raised: %r",
                task.id, task.attempts, task.max_attempts, exc,
            )
            return False, f"{type(exc).__name__}: {exc}"
        if result:
            return True, None
        return False, "delivery rejected"

    def _handle_failure(self, task: QueuedTask, error: str | None) -> None:
        task.last_error = error
        if task.exhausted:
            logger.warning(
                "Email %s permanently failed after %d attempts (template=%s): %s",
                task.id, task.attempts, task.template_id, error,
            )
            self._resolve(task, DeliveryStatus.FAILED, error)
            return

        promoted = self._retry_policy.next_priority(task)
        if promoted != task.priority:
            logger.info(
                "Email %s promoted %s -> %s after %d failures",
                task.id, task.priority, promoted, task.attempts,
            )
            task.priority = promoted

        delay = self._retry_policy.delay_for(task.attempts)
        logger.info(
            "Email %s attempt %d/%d failed (%s), retrying in %.2fs",
            task.id, task.attempts, task.max_attempts, error, delay,
        )
        if delay <= 0:
            self._push(task)
            return
        timer = asyncio.create_task(
            self._retry_later(task, delay), name=f"email-retry-{task.id}"
        )
        self._retry_timers[task.id] = (task, timer)

    async def _retry_later(self, task: QueuedTask, delay: float) -> None:
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            if self._retry_timers.pop(task.id, None) is not None:
                self._resolve(task, DeliveryStatus.CANCELLED, "queue closed")
            self._refresh_idle()
            raise
        self._retry_timers.pop(task.id, None)
        self._push(task)
        self._pump()

    # -- outcomes ---------------------------------------------------------

    def _resolve(
        self,
        task: QueuedTask,
        status: DeliveryStatus,
        error: str | None = None,
    ) -> DeliveryOutcome:
        outcome = DeliveryOutcome(
            task_id=task.id,
            template_id=task.template_id,
            status=status,
            attempts=task.attempts,
            error=error,
        )
        future = self._futures.pop(task.id, None)
        if future is not None and not future.done():
            future.set_result(outcome)
        if self._observers:
            notification = asyncio.create_task(self._notify(task, outcome))
            self._notifications.add(notification)
            notification.add_done_callback(self._notifications.discard)
        return outcome

    async def _notify(self, task: QueuedTask, outcome: DeliveryOutcome) -> None:
        for observer in self._observers:
            try:
                await observer.on_outcome(task, outcome)
            except Exception:
                logger.exception("Delivery observer %r failed", observer)
