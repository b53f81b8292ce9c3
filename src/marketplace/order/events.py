"""Domain events raised by Order and OrderItem."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A customer checkout was persisted with all of its line items."""

    __version__ = 1

    order_id: Identifier(required=True)
    order_number: String(required=True)
    user_id: Identifier(required=True)
    total_amount: Float(required=True)
    currency: String(required=True)
    placed_at: DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """The coarse order-level status moved along the transition table."""

    __version__ = 1

    order_id: Identifier(required=True)
    previous_status: String(required=True)
    new_status: String(required=True)
    changed_by: Identifier()
    changed_at: DateTime(required=True)


@marketplace.event(part_of="Order")
class PaymentStatusUpdated:
    __version__ = 1

    order_id: Identifier(required=True)
    previous_status: String()
    payment_status: String(required=True)
    updated_at: DateTime(required=True)


@marketplace.event(part_of="OrderItem")
class OrderItemStatusChanged:
    """A single line item's fulfillment status changed at its warehouse."""

    __version__ = 1

    order_id: Identifier(required=True)
    order_item_id: Identifier(required=True)
    warehouse_id: Identifier()
    previous_status: String(required=True)
    new_status: String(required=True)
    changed_by: Identifier()
    changed_at: DateTime(required=True)
