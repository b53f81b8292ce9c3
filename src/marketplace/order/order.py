"""Order aggregate and the fulfillment status model shared with line items.

Status machine (same table for orders and items)::

    initialized -> processed | cancelled
    processed -> shipped | cancelled
    shipped -> out_for_delivery | delivered
    out_for_delivery -> delivered | shipped
    delivered -> refunded
    cancelled, refunded: terminal

The order-level ``status`` is maintained independently of its items and
may lag them; item status is authoritative for fulfillment reporting.
Payment status lives only on the order.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Dict, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.order.events import OrderPlaced, OrderStatusChanged, PaymentStatusUpdated


def utcnow() -> datetime:
    return datetime.now(UTC)


class OrderStatus(Enum):
    INITIALIZED = "initialized"
    PROCESSED = "processed"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


STATUS_VALUES = tuple(status.value for status in OrderStatus)
PAYMENT_STATUS_VALUES = tuple(status.value for status in PaymentStatus)

ACTIVE_STATUSES = frozenset(
    {
        OrderStatus.INITIALIZED.value,
        OrderStatus.PROCESSED.value,
        OrderStatus.SHIPPED.value,
        OrderStatus.OUT_FOR_DELIVERY.value,
    }
)
TERMINAL_STATUSES = frozenset(STATUS_VALUES) - ACTIVE_STATUSES

_VALID_TRANSITIONS = {
    OrderStatus.INITIALIZED.value: {OrderStatus.PROCESSED.value, OrderStatus.CANCELLED.value},
    OrderStatus.PROCESSED.value: {OrderStatus.SHIPPED.value, OrderStatus.CANCELLED.value},
    OrderStatus.SHIPPED.value: {OrderStatus.OUT_FOR_DELIVERY.value, OrderStatus.DELIVERED.value},
    OrderStatus.OUT_FOR_DELIVERY.value: {
        OrderStatus.DELIVERED.value,
        OrderStatus.SHIPPED.value,  # Failed delivery attempt
    },
    OrderStatus.DELIVERED.value: {OrderStatus.REFUNDED.value},
    OrderStatus.CANCELLED.value: set(),  # Terminal
    OrderStatus.REFUNDED.value: set(),  # Terminal
}

# Customer cancellation is refused once the parcel has left the warehouse
_NON_CANCELLABLE = {
    OrderStatus.SHIPPED.value,
    OrderStatus.OUT_FOR_DELIVERY.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
}


def is_active(status: str | None) -> bool:
    return (status or OrderStatus.INITIALIZED.value) in ACTIVE_STATUSES


def check_status(value: str, field: str = "status") -> str:
    if value not in STATUS_VALUES:
        raise ValidationError({field: [f"Invalid status '{value}'. Must be one of: {', '.join(STATUS_VALUES)}"]})
    return value


def check_transition(current: str, new: str, field: str = "status") -> None:
    check_status(new, field)
    if new not in _VALID_TRANSITIONS.get(current, set()):
        raise ValidationError({field: [f"Cannot transition from {current} to {new}"]})


@marketplace.aggregate
class Order:
    """A customer's checkout: one payment, one set of addresses, many line items.

    ``warehouse_id`` is the legacy order-level fulfillment assignment. Orders
    placed after attribution moved to line items still carry it, copied from
    the first item that names a warehouse.
    """

    order_number: String(required=True, max_length=50, unique=True)
    user_id: Identifier(required=True)
    status: String(choices=OrderStatus, default=OrderStatus.INITIALIZED.value)
    total_amount: Float(min_value=0.0, default=0.0)
    currency: String(max_length=3, default="INR")
    payment_method: String(max_length=30, default="cod")
    payment_status: String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_data: Dict()
    shipping_address: Dict(required=True)
    billing_address: Dict()
    contact_email: String(max_length=255)
    contact_phone: String(max_length=20)
    warehouse_id: Identifier()
    extras: Dict()
    tracking_number: String(max_length=100)
    estimated_delivery_date: DateTime()
    created_at: DateTime(default=utcnow)
    updated_at: DateTime(default=utcnow)

    @classmethod
    def place(cls, **kwargs) -> "Order":
        order = cls(**kwargs)
        order.raise_(
            OrderPlaced(
                order_id=order.id,
                order_number=order.order_number,
                user_id=order.user_id,
                total_amount=order.total_amount,
                currency=order.currency,
                placed_at=order.created_at,
            )
        )
        return order

    @property
    def is_cancellable(self) -> bool:
        return self.status not in _NON_CANCELLABLE

    def transition_to(self, new_status: str, changed_by: str | None = None) -> str:
        """Move to ``new_status`` if the transition table allows it; returns the previous status."""
        previous = self.status
        check_transition(previous, new_status)

        self.status = new_status
        self.updated_at = utcnow()
        self.raise_(
            OrderStatusChanged(
                order_id=self.id,
                previous_status=previous,
                new_status=new_status,
                changed_by=changed_by,
                changed_at=self.updated_at,
            )
        )
        return previous

    def merge_extras(self, values: dict | None) -> None:
        if values:
            self.extras = {**(self.extras or {}), **values}

    def record_payment(self, payment_status: str, payment_data: dict | None = None) -> str:
        if payment_status not in PAYMENT_STATUS_VALUES:
            raise ValidationError(
                {
                    "payment_status": [
                        f"Invalid payment status '{payment_status}'. "
                        f"Must be one of: {', '.join(PAYMENT_STATUS_VALUES)}"
                    ]
                }
            )

        previous = self.payment_status
        self.payment_status = payment_status
        if payment_data:
            self.payment_data = {**(self.payment_data or {}), **payment_data}
        self.updated_at = utcnow()
        self.raise_(
            PaymentStatusUpdated(
                order_id=self.id,
                previous_status=previous,
                payment_status=payment_status,
                updated_at=self.updated_at,
            )
        )
        return previous
