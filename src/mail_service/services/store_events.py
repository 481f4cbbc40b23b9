"""Maps storefront events to transactional emails."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from mail_service.application.dto.order import (
    CartItem,
    Order,
    TrackingInfo,
    Workshop,
    WorkshopBooking,
)
from mail_service.infrastructure.bus.serializer import decode_stream_payload
from mail_service.services import email_service
from mail_service.services.email_queue import EmailQueue
from mail_service.services.email_service import ORDER_STATUS_TEMPLATES

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any], EmailQueue], Awaitable[None]]


async def handle_store_event(event_type: str, fields: dict[str, Any], queue: EmailQueue) -> None:
    """Dispatch a stream event to the matching email composer."""
    handler = _HANDLERS.get(event_type)
    if handler is None:
        logger.debug("Ignoring unknown event: %s", event_type)
        return
    await handler(decode_stream_payload(fields), queue)


async def _handle_order_created(data: dict[str, Any], queue: EmailQueue) -> None:
    order = Order.from_dict(data["order"])
    email_service.send_order_confirmation(order, data["email"], queue)
    logger.info("Queued order confirmation for order %s", order.short_id)


async def _handle_order_paid(data: dict[str, Any], queue: EmailQueue) -> None:
    order = Order.from_dict(data["order"])
    email_service.send_payment_confirmation(order, data["payment_id"], data["email"], queue)
    logger.info("Queued payment confirmation for order %s", order.short_id)


async def _handle_order_status_changed(data: dict[str, Any], queue: EmailQueue) -> None:
    order = Order.from_dict(data["order"])
    new_status = data.get("status", order.status)
    old_status = data.get("old_status")

    if old_status == new_status:
        logger.debug("Order %s status unchanged (%s)", order.short_id, new_status)
        return
    if new_status not in ORDER_STATUS_TEMPLATES:
        logger.debug("No email for order %s status %s", order.short_id, new_status)
        return

    tracking = TrackingInfo.from_dict(data["tracking"]) if data.get("tracking") else None
    email_service.send_order_status(order, new_status, data["email"], queue, tracking)
    logger.info(
        "Order %s status %s -> %s, email queued",
        order.short_id, old_status or "?", new_status,
    )


async def _handle_cancellation_requested(data: dict[str, Any], queue: EmailQueue) -> None:
    order = Order.from_dict(data["order"])
    email_service.send_cancellation_request(order, data["request_type"], data["email"], queue)


async def _handle_cancellation_resolved(data: dict[str, Any], queue: EmailQueue) -> None:
    order = Order.from_dict(data["order"])
    email_service.send_cancellation_decision(
        order,
        data["request_type"],
        bool(data["approved"]),
        data["email"],
        queue,
        reason=data.get("reason", ""),
    )


async def _handle_cart_abandoned(data: dict[str, Any], queue: EmailQueue) -> None:
    items = [CartItem.from_dict(i) for i in data.get("items") or []]
    if not items:
        logger.debug("Abandoned cart for %s is empty, skipping", data.get("email"))
        return
    email_service.send_abandoned_cart(data["email"], data.get("name", ""), items, queue)


async def _handle_user_registered(data: dict[str, Any], queue: EmailQueue) -> None:
    email_service.send_welcome(data["email"], data.get("name", ""), queue)


async def _handle_workshop_booked(data: dict[str, Any], queue: EmailQueue) -> None:
    email_service.send_workshop_booking(
        Workshop.from_dict(data["workshop"]),
        WorkshopBooking.from_dict(data["booking"]),
        data["email"],
        queue,
    )


async def _handle_feedback_due(data: dict[str, Any], queue: EmailQueue) -> None:
    order = Order.from_dict(data["order"])
    email_service.send_feedback_request(order, data["email"], queue)


_HANDLERS: dict[str, Handler] = {
    "order.created": _handle_order_created,
    "order.paid": _handle_order_paid,
    "order.status_changed": _handle_order_status_changed,
    "order.feedback_due": _handle_feedback_due,
    "cancellation.requested": _handle_cancellation_requested,
    "cancellation.resolved": _handle_cancellation_resolved,
    "cart.abandoned": _handle_cart_abandoned,
    "user.registered": _handle_user_registered,
    "workshop.booked": _handle_workshop_booked,
}
