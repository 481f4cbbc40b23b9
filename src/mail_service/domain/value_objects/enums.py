from __future__ import annotations

from enum import StrEnum


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Scheduling rank: lower is dispatched first."""
        return _PRIORITY_RANK[self]

    def promoted(self) -> Priority:
        if self is Priority.LOW:
            return Priority.MEDIUM
        return Priority.HIGH


_PRIORITY_RANK: dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class DeliveryStatus(StrEnum):
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PrincipalKind(StrEnum):
    USER = "user"
    ADMIN = "admin"


class OrderStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class EmailTemplate(StrEnum):
    ORDER_CONFIRMATION = "template_order_confirmation"
    PAYMENT_CONFIRMATION = "template_payment_confirmation"
    ORDER_PROCESSING = "template_order_processing"
    ORDER_SHIPPED = "template_order_shipped"
    ORDER_DELIVERED = "template_order_delivered"
    ORDER_CANCELLED = "template_order_cancelled"
    CANCELLATION_REQUEST = "template_cancellation_request"
    CANCELLATION_APPROVED = "template_cancellation_approved"
    CANCELLATION_REJECTED = "template_cancellation_rejected"
    REPLACEMENT_REQUEST = "template_replacement_request"
    REPLACEMENT_APPROVED = "template_replacement_approved"
    REPLACEMENT_REJECTED = "template_replacement_rejected"
    WORKSHOP_BOOKING = "template_workshop_booking"
    WORKSHOP_CONFIRMATION = "template_workshop_confirmation"
    WORKSHOP_REMINDER = "template_workshop_reminder"
    ABANDONED_CART = "template_abandoned_cart"
    FEEDBACK_REQUEST = "template_feedback_request"
    WELCOME = "template_welcome"
    PASSWORD_RESET = "template_password_reset"
