from __future__ import annotations

import json

import pytest

from mail_service.domain.value_objects.enums import EmailTemplate
from mail_service.services.store_events import handle_store_event
from tests.conftest import make_order_dict


def _fields(event_type: str, **payload) -> dict[str, str]:
    return {"event_type": event_type, "payload": json.dumps(payload)}


@pytest.mark.asyncio
async def test_order_created_queues_confirmation(fake_queue):
    fields = _fields("order.created", order=make_order_dict(), email="asha@example.com")

    await handle_store_event("order.created", fields, fake_queue)

    assert fake_queue.templates == [EmailTemplate.ORDER_CONFIRMATION]
    assert fake_queue.queued[0]["parameters"]["recipient_email"] == "asha@example.com"


@pytest.mark.asyncio
async def test_order_paid_queues_payment_confirmation(fake_queue):
    fields = _fields(
        "order.paid", order=make_order_dict(), email="a@example.com", payment_id="pay_9",
    )

    await handle_store_event("order.paid", fields, fake_queue)

    assert fake_queue.templates == [EmailTemplate.PAYMENT_CONFIRMATION]


@pytest.mark.asyncio
async def test_status_change_queues_status_email(fake_queue):
    fields = _fields(
        "order.status_changed",
        order=make_order_dict(status="shipped"),
        email="a@example.com",
        old_status="processing",
        status="shipped",
        tracking={"tracking_id": "DL1", "carrier": "Delhivery"},
    )

    await handle_store_event("order.status_changed", fields, fake_queue)

    assert fake_queue.templates == [EmailTemplate.ORDER_SHIPPED]
    assert fake_queue.queued[0]["parameters"]["tracking_id"] == "DL1"


@pytest.mark.asyncio
async def test_unchanged_status_is_skipped(fake_queue):
    fields = _fields(
        "order.status_changed",
        order=make_order_dict(status="shipped"),
        email="a@example.com",
        old_status="shipped",
        status="shipped",
    )

    await handle_store_event("order.status_changed", fields, fake_queue)

    assert fake_queue.queued == []


@pytest.mark.asyncio
async def test_status_without_template_is_skipped(fake_queue):
    fields = _fields(
        "order.status_changed",
        order=make_order_dict(),
        email="a@example.com",
        old_status="processing",
        status="pending",
    )

    await handle_store_event("order.status_changed", fields, fake_queue)

    assert fake_queue.queued == []


@pytest.mark.asyncio
async def test_cancellation_events(fake_queue):
    order = make_order_dict()

    await handle_store_event(
        "cancellation.requested",
        _fields("cancellation.requested", order=order, email="a@example.com", request_type="exchange"),
        fake_queue,
    )
    await handle_store_event(
        "cancellation.resolved",
        _fields(
            "cancellation.resolved",
            order=order,
            email="a@example.com",
            request_type="cancel",
            approved=False,
            reason="Already shipped",
        ),
        fake_queue,
    )

    assert fake_queue.templates == [
        EmailTemplate.REPLACEMENT_REQUEST,
        EmailTemplate.CANCELLATION_REJECTED,
    ]
    assert fake_queue.queued[1]["parameters"]["reason"] == "Already shipped"


@pytest.mark.asyncio
async def test_empty_abandoned_cart_is_skipped(fake_queue):
    await handle_store_event(
        "cart.abandoned", _fields("cart.abandoned", email="a@example.com", items=[]), fake_queue,
    )

    assert fake_queue.queued == []


@pytest.mark.asyncio
async def test_abandoned_cart_queues_reminder(fake_queue):
    fields = _fields(
        "cart.abandoned",
        email="a@example.com",
        name="Asha",
        items=make_order_dict()["items"],
    )

    await handle_store_event("cart.abandoned", fields, fake_queue)

    assert fake_queue.templates == [EmailTemplate.ABANDONED_CART]


@pytest.mark.asyncio
async def test_registration_workshop_and_feedback(fake_queue):
    await handle_store_event(
        "user.registered", _fields("user.registered", email="new@example.com", name="Neha"), fake_queue,
    )
    await handle_store_event(
        "workshop.booked",
        _fields(
            "workshop.booked",
            email="a@example.com",
            workshop={"id": "w-1", "title": "Glazing"},
            booking={"id": "bk-12345678", "name": "Asha", "date": "2026-04-01", "time": "11:00"},
        ),
        fake_queue,
    )
    await handle_store_event(
        "order.feedback_due",
        _fields("order.feedback_due", order=make_order_dict(status="delivered"), email="a@example.com"),
        fake_queue,
    )

    assert fake_queue.templates == [
        EmailTemplate.WELCOME,
        EmailTemplate.WORKSHOP_BOOKING,
        EmailTemplate.FEEDBACK_REQUEST,
    ]


@pytest.mark.asyncio
async def test_unknown_event_is_ignored(fake_queue):
    await handle_store_event("order.refunded", _fields("order.refunded"), fake_queue)

    assert fake_queue.queued == []


@pytest.mark.asyncio
async def test_malformed_payload_raises(fake_queue):
    with pytest.raises(KeyError):
        await handle_store_event("order.created", _fields("order.created", email="a@example.com"), fake_queue)
