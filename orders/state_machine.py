"""
Order status state machine.

Table-driven checks for order-status and payment-status transitions, the
payment-to-order status derivation, and the once-only lifecycle timestamps.
Validation has no side effects; callers apply the new status themselves.
"""
from datetime import datetime
from typing import Optional

from django.utils import timezone

from core.exceptions import InvalidState
from .models import OrderStatus, PaymentStatus

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING},  # retry
    PaymentStatus.REFUNDED: set(),
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED},
}

# order status entered -> timestamp field it stamps
ORDER_TIMESTAMPS = {
    OrderStatus.SHIPPED: 'shipped_at',
    OrderStatus.DELIVERED: 'delivered_at',
    OrderStatus.CANCELLED: 'cancelled_at',
}


class InvalidTransition(InvalidState):
    """Raised when a requested status change is not in the transition table."""

    def __init__(self, kind: str, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid {kind}transition from {current} to {requested}")


def can_transition_order(current: str, requested: str) -> bool:
    return requested in ORDER_TRANSITIONS.get(current, set())


def can_transition_payment(current: str, requested: str) -> bool:
    return requested in PAYMENT_TRANSITIONS.get(current, set())


def validate_order_transition(current: str, requested: str) -> None:
    if not can_transition_order(current, requested):
        raise InvalidTransition('', current, requested)


def validate_payment_transition(current: str, requested: str) -> None:
    if not can_transition_payment(current, requested):
        raise InvalidTransition('payment ', current, requested)


def order_status_from_payment(payment_status: str) -> str:
    """Order status implied by a payment status change."""
    if payment_status == PaymentStatus.PAID:
        return OrderStatus.CONFIRMED
    if payment_status == PaymentStatus.REFUNDED:
        return OrderStatus.REFUNDED
    return OrderStatus.PENDING


def apply_status_timestamps(
    order,
    order_status: Optional[str] = None,
    payment_status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list:
    """
    Stamp lifecycle timestamps for the statuses being entered.

    A timestamp that is already set is never overwritten.

    Returns:
        Names of the fields that were set
    """
    now = now or timezone.now()
    changed = []

    field = ORDER_TIMESTAMPS.get(order_status)
    if field and getattr(order, field) is None:
        setattr(order, field, now)
        changed.append(field)

    if payment_status == PaymentStatus.PAID and order.paid_at is None:
        order.paid_at = now
        changed.append('paid_at')

    return changed
