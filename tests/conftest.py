"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import pytest
import redis.asyncio as aioredis

from mail_service.application.dto.delivery import DeliveryOutcome, QueueStatus
from mail_service.application.dto.order import Order
from mail_service.domain.entities.task import QueuedTask
from mail_service.domain.value_objects.enums import DeliveryStatus, Priority


async def settle(rounds: int = 10) -> None:
    """Let ready callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class FakeDeliverer:
    """Scripted deliverer: per-template list of results (bool or exception)."""

    script: dict[str, list[bool | Exception]] = field(default_factory=dict)
    default: bool = True
    hold: asyncio.Event | None = None
    delay: float = 0.0
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    delivered: list[str] = field(default_factory=list)
    active: int = 0
    max_active: int = 0

    async def send(self, template_id: str, parameters: dict[str, Any]) -> bool:
        self.calls.append((template_id, parameters))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.hold is not None:
                await self.hold.wait()
            else:
                await asyncio.sleep(self.delay)
            results = self.script.get(template_id)
            result = results.pop(0) if results else self.default
            if isinstance(result, Exception):
                raise result
            if result:
                self.delivered.append(template_id)
            return result
        finally:
            self.active -= 1

    @property
    def order(self) -> list[str]:
        return [template_id for template_id, _ in self.calls]

    def count(self, template_id: str) -> int:
        return sum(1 for t, _ in self.calls if t == template_id)


@dataclass
class RecordingObserver:
    outcomes: list[tuple[QueuedTask, DeliveryOutcome]] = field(default_factory=list)

    async def on_outcome(self, task: QueuedTask, outcome: DeliveryOutcome) -> None:
        self.outcomes.append((task, outcome))


@dataclass
class FakePublisher:
    published: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        self.published.append((channel, payload))


class FakeStreamRedis:
    """Just enough of redis.asyncio.Redis for the stream consumer and publisher."""

    def __init__(self, entries=(), stale=()) -> None:
        self.entries = list(entries)
        self.stale = list(stale)
        self.acked: list[str] = []
        self.groups: list[str] = []
        self.published: list[tuple[str, str]] = []
        self.closed = False

    async def ping(self) -> bool:
        return True

    async def xgroup_create(self, stream, group, id="$", mkstream=False):
        if group in self.groups:
            raise aioredis.ResponseError("BUSYGROUP Consumer Group name already exists")
        self.groups.append(group)
        return True

    async def xautoclaim(self, stream, group, consumer, min_idle_time, start_id="0-0", count=None):
        claimed, self.stale = self.stale, []
        return ["0-0", claimed, []]

    async def xreadgroup(self, groupname, consumername, streams, count=None, block=None):
        if not self.entries:
            await asyncio.sleep(0.01)
            return []
        batch, self.entries = self.entries, []
        return [(next(iter(streams)), batch)]

    async def xack(self, stream, group, *ids):
        self.acked.extend(ids)
        return len(ids)

    async def publish(self, channel: str, raw: str) -> int:
        self.published.append((channel, raw))
        return 1

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeEmailQueue:
    """Records enqueue calls instead of delivering."""

    queued: list[dict[str, Any]] = field(default_factory=list)
    closed: bool = False
    concurrency: int = 5

    def enqueue(
        self,
        template_id: str,
        parameters: dict[str, Any],
        priority: Priority | str = Priority.MEDIUM,
        max_attempts: int = 3,
    ) -> asyncio.Future[DeliveryOutcome] | None:
        self.queued.append(
            {
                "template_id": template_id,
                "parameters": parameters,
                "priority": Priority(priority),
                "max_attempts": max_attempts,
            }
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        future: asyncio.Future[DeliveryOutcome] = loop.create_future()
        future.set_result(
            DeliveryOutcome(
                task_id=uuid.uuid4(),
                template_id=template_id,
                status=DeliveryStatus.DELIVERED,
                attempts=1,
            )
        )
        return future

    def get_status(self) -> QueueStatus:
        return QueueStatus(queue_length=len(self.queued), processing=False)

    def pending_tasks(self) -> list[QueuedTask]:
        now = datetime.now(timezone.utc)
        return [
            QueuedTask(
                id=uuid.uuid4(),
                template_id=q["template_id"],
                parameters=q["parameters"],
                priority=q["priority"],
                max_attempts=q["max_attempts"],
                enqueued_at=now,
            )
            for q in self.queued
        ]

    @property
    def templates(self) -> list[str]:
        return [q["template_id"] for q in self.queued]


def make_order_dict(
    *,
    order_id: str = "3f2a9c1e-8b7d-4e5f-a6b7-c8d9e0f1a2b3",
    status: str = "pending",
    total: float = 2499.0,
    payment_method: str = "razorpay",
) -> dict[str, Any]:
    return {
        "id": order_id,
        "status": status,
        "total": total,
        "created_at": "2026-03-05T10:15:00Z",
        "shipping_address": {
            "full_name": "Asha Verma",
            "street": "12 MG Road",
            "city": "Pune",
            "state": "MH",
            "postal_code": "411001",
            "country": "India",
        },
        "payment_details": {"method": payment_method},
        "items": [
            {
                "quantity": 2,
                "price": 999.5,
                "product": {
                    "id": "p-1",
                    "name": "Terracotta Planter",
                    "price": 1200,
                    "discount_price": 999.5,
                    "image": "https://cdn.example.com/p-1.jpg",
                },
            }
        ],
    }


def make_order(**kwargs: Any) -> Order:
    return Order.from_dict(make_order_dict(**kwargs))


@pytest.fixture
def deliverer() -> FakeDeliverer:
    return FakeDeliverer()


@pytest.fixture
def fake_queue() -> FakeEmailQueue:
    return FakeEmailQueue()
