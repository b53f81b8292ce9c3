"""Append-only audit trail of order and item status transitions.

Rows are only ever inserted. They record what happened; they do not
serialize concurrent writers (the last status write wins).
"""

from protean.fields import DateTime, Dict, Identifier, String, Text

from marketplace.domain import marketplace
from marketplace.order.order import utcnow

CREATED_NOTE = "Order created"
PAYMENT_UPDATED = "payment_updated"


@marketplace.aggregate
class OrderEvent:
    order_id: Identifier(required=True)
    order_item_id: Identifier()
    previous_status: String(max_length=50)
    new_status: String(required=True, max_length=50)
    changed_by: Identifier()
    note: Text()
    extras: Dict()
    created_at: DateTime(default=utcnow)

    @classmethod
    def record(
        cls,
        order_id,
        new_status: str,
        previous_status: str | None = None,
        changed_by=None,
        note: str | None = None,
        extras: dict | None = None,
        order_item_id=None,
    ) -> "OrderEvent":
        return cls(
            order_id=order_id,
            order_item_id=order_item_id,
            previous_status=previous_status,
            new_status=new_status,
            changed_by=changed_by,
            note=note,
            extras=extras or {},
        )
