"""OrderItem aggregate: one line of an order, fulfilled by one warehouse.

Items are stored as their own aggregate so that each warehouse can move
its lines through the status machine independently of the others.
``warehouse_id`` is nullable: lines written before attribution moved to
item granularity inherit the warehouse of their parent order.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Dict, Float, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.order.events import OrderItemStatusChanged
from marketplace.order.order import OrderStatus, check_transition, utcnow

PRICE_TOLERANCE = 0.01


def line_total(unit_price: float, quantity: int) -> float:
    return round(float(unit_price) * int(quantity), 2)


@marketplace.aggregate
class OrderItem:
    order_id: Identifier(required=True)
    product_id: Identifier(required=True)
    variant_id: Identifier()
    warehouse_id: Identifier()
    sku: String(max_length=100)
    title: String(required=True, max_length=255)
    quantity: Integer(required=True, min_value=1)
    unit_price: Float(required=True, min_value=0.0)
    total_price: Float(required=True, min_value=0.0)
    product_snapshot: Dict()
    status: String(choices=OrderStatus, default=OrderStatus.INITIALIZED.value)
    dispatch_id: String(max_length=100)
    created_at: DateTime(default=utcnow)
    updated_at: DateTime(default=utcnow)

    @invariant.post
    def total_matches_unit_price_times_quantity(self):
        if self.unit_price is None or self.quantity is None or self.total_price is None:
            return
        if abs(self.total_price - self.unit_price * self.quantity) > PRICE_TOLERANCE:
            raise ValidationError({"total_price": ["Total price must equal unit price times quantity"]})

    @classmethod
    def for_line(cls, order_id, product_id, title, quantity, unit_price, **fields) -> "OrderItem":
        return cls(
            order_id=order_id,
            product_id=product_id,
            title=title,
            quantity=quantity,
            unit_price=round(float(unit_price), 2),
            total_price=line_total(unit_price, quantity),
            **fields,
        )

    def transition_to(self, new_status: str, changed_by: str | None = None) -> str:
        previous = self.status or OrderStatus.INITIALIZED.value
        check_transition(previous, new_status)

        self.status = new_status
        self.updated_at = utcnow()
        self.raise_(
            OrderItemStatusChanged(
                order_id=self.order_id,
                order_item_id=self.id,
                warehouse_id=self.warehouse_id,
                previous_status=previous,
                new_status=new_status,
                changed_by=changed_by,
                changed_at=self.updated_at,
            )
        )
        return previous
