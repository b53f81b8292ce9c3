"""Status and revenue aggregates over warehouse-attributed items.

Two granularities are in play and are kept apart:

* fulfillment (``activeOrders``, ``byStatus``) is computed from item
  status, the authoritative fulfillment state;
* payment (``byPaymentStatus``) is computed from order rows, since
  payment has no item-level counterpart.

``order_summary`` is the customer-facing counterpart: whole orders, with
no warehouse scoping, grouped by order status and payment method.
"""

from collections import defaultdict

from marketplace.order.order import OrderStatus, PaymentStatus, is_active


def _money(value) -> float:
    return round(float(value or 0), 2)


class StatusAggregator:
    @staticmethod
    def active_orders(items) -> int:
        """Distinct orders with at least one item still in an active status."""
        return len({str(item.order_id) for item in items if is_active(item.status)})

    @staticmethod
    def by_status(items) -> dict:
        buckets = defaultdict(lambda: {"count": 0, "revenue": 0.0})
        for item in items:
            bucket = buckets[item.status or OrderStatus.INITIALIZED.value]
            bucket["count"] += 1
            bucket["revenue"] += float(item.total_price or 0)
        return {status: {"count": b["count"], "revenue": _money(b["revenue"])} for status, b in buckets.items()}

    @staticmethod
    def by_payment_status(orders) -> dict:
        buckets = defaultdict(lambda: {"count": 0})
        for order in orders:
            buckets[order.payment_status or PaymentStatus.PENDING.value]["count"] += 1
        return dict(buckets)

    @classmethod
    def summarize(cls, items, orders) -> dict:
        """Warehouse statistics for ``items`` and the ``orders`` they belong to.

        Items whose parent is not in ``orders`` (e.g. dropped by an
        order-level date filter) are ignored.
        """
        order_ids = {str(order.id) for order in orders}
        in_scope = [item for item in items if str(item.order_id) in order_ids]

        revenue = sum(float(item.total_price or 0) for item in in_scope)
        total_orders = len(orders)
        return {
            "summary": {
                "totalOrders": total_orders,
                "totalRevenue": _money(revenue),
                "averageOrderValue": _money(revenue / total_orders) if total_orders else 0,
                "totalItems": sum(int(item.quantity or 0) for item in in_scope),
                "activeOrders": cls.active_orders(in_scope),
            },
            "byStatus": cls.by_status(in_scope),
            "byPaymentStatus": cls.by_payment_status(orders),
        }

    @staticmethod
    def order_summary(orders) -> dict:
        """Order-level statistics: every figure comes from order rows and totals."""
        by_status = defaultdict(lambda: {"count": 0, "revenue": 0.0})
        by_method = defaultdict(lambda: {"count": 0, "revenue": 0.0})
        for order in orders:
            amount = float(order.total_amount or 0)
            for bucket in (by_status[order.status], by_method[order.payment_method]):
                bucket["count"] += 1
                bucket["revenue"] += amount

        revenue = sum(float(order.total_amount or 0) for order in orders)
        total_orders = len(orders)
        return {
            "summary": {
                "totalOrders": total_orders,
                "totalRevenue": _money(revenue),
                "averageOrderValue": _money(revenue / total_orders) if total_orders else 0,
                "uniqueCustomers": len({str(order.user_id) for order in orders}),
            },
            "byStatus": {key: {"count": b["count"], "revenue": _money(b["revenue"])} for key, b in by_status.items()},
            "byPaymentMethod": {
                key: {"count": b["count"], "revenue": _money(b["revenue"])} for key, b in by_method.items()
            },
        }
