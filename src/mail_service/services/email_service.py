"""Transactional email composers.

Each function turns storefront records into a template parameter bag and
hands it to the :class:`EmailQueue`. Nothing here talks to the delivery API.
"""
from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

from mail_service.application.dto.delivery import DeliveryOutcome
from mail_service.application.dto.order import (
    CartItem,
    Order,
    TrackingInfo,
    Workshop,
    WorkshopBooking,
)
from mail_service.application.exceptions import ValidationError
from mail_service.config import settings
from mail_service.domain.value_objects.enums import EmailTemplate, OrderStatus, Priority
from mail_service.services.email_queue import EmailQueue

OutcomeFuture = asyncio.Future[DeliveryOutcome]

ORDER_STATUS_TEMPLATES: dict[str, EmailTemplate] = {
    OrderStatus.PROCESSING: EmailTemplate.ORDER_PROCESSING,
    OrderStatus.SHIPPED: EmailTemplate.ORDER_SHIPPED,
    OrderStatus.DELIVERED: EmailTemplate.ORDER_DELIVERED,
    OrderStatus.CANCELLED: EmailTemplate.ORDER_CANCELLED,
}

_PAYMENT_METHOD_LABELS = {
    "razorpay": "Online Payment",
    "cod": "Cash on Delivery",
}


def format_inr(amount: float) -> str:
    """Format an amount as rupees with Indian digit grouping (₹12,34,567.00)."""
    sign = "-" if amount < 0 else ""
    rupees, paise = f"{abs(amount):.2f}".split(".")
    if len(rupees) > 3:
        head, tail = rupees[:-3], rupees[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        rupees = ",".join([*groups, tail])
    return f"{sign}₹{rupees}.{paise}"


def format_date(value: datetime) -> str:
    return value.strftime("%d/%m/%Y")


def _today() -> str:
    return format_date(datetime.now(timezone.utc))


def _link(path: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}{path}"


def with_common_parameters(params: dict[str, Any], recipient: str | None = None) -> dict[str, Any]:
    """Add the fields every template expects."""
    return {
        **params,
        "website_url": settings.SITE_URL,
        "current_year": str(datetime.now(timezone.utc).year),
        "recipient_email": recipient or params.get("email"),
    }


def _enqueue(
    queue: EmailQueue,
    template: EmailTemplate,
    params: dict[str, Any],
    email: str,
    priority: Priority,
) -> OutcomeFuture:
    return queue.enqueue(
        template.value,
        with_common_parameters(params, email),
        priority=priority,
        max_attempts=settings.EMAIL_MAX_ATTEMPTS,
    )


def send_order_confirmation(order: Order, email: str, queue: EmailQueue) -> OutcomeFuture:
    items = [
        {
            "name": item.product.name,
            "quantity": item.quantity,
            "price": item.price,
            "total": item.total,
        }
        for item in order.items
    ]
    params = {
        "order_id": order.short_id,
        "order_date": format_date(order.created_at),
        "customer_name": order.shipping_address.full_name,
        "email": email,
        "shipping_address": order.shipping_address.one_line(),
        "payment_method": _PAYMENT_METHOD_LABELS.get(order.payment_method, "Cash on Delivery"),
        "order_total": format_inr(order.total),
        "order_items": json.dumps(items),
        "order_status": order.status.capitalize(),
        "order_link": _link(f"/orders/{order.id}"),
    }
    return _enqueue(queue, EmailTemplate.ORDER_CONFIRMATION, params, email, Priority.HIGH)


def send_payment_confirmation(
    order: Order,
    payment_id: str,
    email: str,
    queue: EmailQueue,
) -> OutcomeFuture:
    params = {
        "order_id": order.short_id,
        "payment_id": payment_id,
        "payment_date": _today(),
        "customer_name": order.shipping_address.full_name,
        "email": email,
        "payment_amount": format_inr(order.total),
        "payment_method": "Online Payment (Razorpay)",
        "order_link": _link(f"/orders/{order.id}"),
    }
    return _enqueue(queue, EmailTemplate.PAYMENT_CONFIRMATION, params, email, Priority.HIGH)


def send_order_status(
    order: Order,
    status: str,
    email: str,
    queue: EmailQueue,
    tracking: TrackingInfo | None = None,
) -> OutcomeFuture:
    template = ORDER_STATUS_TEMPLATES.get(status)
    if template is None:
        raise ValidationError(f"No email template for order status {status!r}")

    tracking = tracking or TrackingInfo()
    params = {
        "order_id": order.short_id,
        "customer_name": order.shipping_address.full_name,
        "email": email,
        "order_date": format_date(order.created_at),
        "order_total": format_inr(order.total),
        "order_status": status.capitalize(),
        "order_link": _link(f"/orders/{order.id}"),
        "tracking_id": tracking.tracking_id,
        "tracking_url": tracking.tracking_url,
        "shipping_carrier": tracking.carrier,
    }
    return _enqueue(queue, template, params, email, Priority.MEDIUM)


def _check_request_type(request_type: str) -> None:
    if request_type not in ("cancel", "exchange"):
        raise ValidationError(f"Unknown request type {request_type!r}")


def send_cancellation_request(
    order: Order,
    request_type: str,
    email: str,
    queue: EmailQueue,
) -> OutcomeFuture:
    _check_request_type(request_type)
    template = (
        EmailTemplate.CANCELLATION_REQUEST
        if request_type == "cancel"
        else EmailTemplate.REPLACEMENT_REQUEST
    )
    params = {
        "order_id": order.short_id,
        "customer_name": order.shipping_address.full_name,
        "email": email,
        "request_type": "cancellation" if request_type == "cancel" else "replacement",
        "request_date": _today(),
        "order_link": _link(f"/orders/{order.id}"),
    }
    return _enqueue(queue, template, params, email, Priority.MEDIUM)


def send_cancellation_decision(
    order: Order,
    request_type: str,
    approved: bool,
    email: str,
    queue: EmailQueue,
    reason: str = "",
) -> OutcomeFuture:
    _check_request_type(request_type)
    if request_type == "cancel":
        template = (
            EmailTemplate.CANCELLATION_APPROVED if approved else EmailTemplate.CANCELLATION_REJECTED
        )
    else:
        template = (
            EmailTemplate.REPLACEMENT_APPROVED if approved else EmailTemplate.REPLACEMENT_REJECTED
        )
    params = {
        "order_id": order.short_id,
        "customer_name": order.shipping_address.full_name,
        "email": email,
        "decision": "approved" if approved else "rejected",
        "decision_date": _today(),
        "reason": reason,
        "order_link": _link(f"/orders/{order.id}"),
    }
    return _enqueue(queue, template, params, email, Priority.MEDIUM)


def send_workshop_booking(
    workshop: Workshop,
    booking: WorkshopBooking,
    email: str,
    queue: EmailQueue,
) -> OutcomeFuture:
    params = {
        "workshop_title": workshop.title,
        "workshop_date": booking.date,
        "workshop_time": booking.time,
        "workshop_location": booking.location or "To be confirmed",
        "customer_name": booking.name,
        "email": email,
        "booking_id": booking.id[:8],
        "booking_date": _today(),
        "participants": booking.participants,
        "workshop_link": _link(f"/workshop/{workshop.id}"),
    }
    return _enqueue(queue, EmailTemplate.WORKSHOP_BOOKING, params, email, Priority.MEDIUM)


def send_abandoned_cart(
    email: str,
    name: str,
    cart_items: list[CartItem],
    queue: EmailQueue,
) -> OutcomeFuture:
    items = [
        {
            "name": item.product.name,
            "quantity": item.quantity,
            "price": format_inr(item.product.effective_price),
            "image": item.product.image,
        }
        for item in cart_items
    ]
    cart_total = sum(item.product.effective_price * item.quantity for item in cart_items)
    params = {
        "customer_name": name,
        "email": email,
        "cart_items": json.dumps(items, ensure_ascii=False),
        "cart_total": format_inr(cart_total),
        "cart_link": _link("/cart"),
        "abandoned_date": _today(),
    }
    return _enqueue(queue, EmailTemplate.ABANDONED_CART, params, email, Priority.LOW)


def send_feedback_request(order: Order, email: str, queue: EmailQueue) -> OutcomeFuture:
    items = [
        {"id": item.product.id, "name": item.product.name, "image": item.product.image}
        for item in order.items
    ]
    params = {
        "order_id": order.short_id,
        "customer_name": order.shipping_address.full_name,
        "email": email,
        "order_date": format_date(order.created_at),
        "order_items": json.dumps(items),
        "feedback_link": _link(f"/feedback/{order.id}"),
    }
    return _enqueue(queue, EmailTemplate.FEEDBACK_REQUEST, params, email, Priority.LOW)


def send_welcome(email: str, name: str, queue: EmailQueue) -> OutcomeFuture:
    params = {
        "customer_name": name,
        "email": email,
        "login_link": _link("/login"),
    }
    return _enqueue(queue, EmailTemplate.WELCOME, params, email, Priority.LOW)


def send_password_reset(email: str, reset_link: str, queue: EmailQueue) -> OutcomeFuture:
    params = {
        "email": email,
        "reset_link": reset_link,
        "expiry_time": "24 hours",
    }
    return _enqueue(queue, EmailTemplate.PASSWORD_RESET, params, email, Priority.HIGH)
