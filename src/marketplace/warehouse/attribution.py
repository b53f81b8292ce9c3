"""Warehouse attribution: which orders and line items a set of warehouses fulfils.

Attribution moved from the order row to the line item partway through
the system's life, and old rows were never backfilled. Both generations
resolve here:

* item-level: ``order_item.warehouse_id`` names the warehouse;
* order-level fallback: the item's ``warehouse_id`` is null and the parent
  ``order.warehouse_id`` names it.

An item's *effective* warehouse is its own ``warehouse_id`` if set, else
its order's. Items where both are null belong to no warehouse and are
never returned by any warehouse-scoped query.
"""

from typing import Iterable

import structlog

from marketplace.order.item import OrderItem
from marketplace.order.order import STATUS_VALUES, Order
from marketplace.store.query import choice, member_of, where

logger = structlog.get_logger(__name__)


def effective_warehouse(item, order=None) -> str | None:
    if item.warehouse_id:
        return str(item.warehouse_id)
    if order is not None and order.warehouse_id:
        return str(order.warehouse_id)
    return None


class WarehouseAttributionResolver:
    def __init__(self, store):
        self.store = store

    def resolve(self, warehouse_ids: Iterable[str], status: str | None = None) -> set[str]:
        """Order ids for which ``warehouse_ids`` hold fulfillment responsibility.

        With ``status``, an order qualifies only through an attributed item
        in that status: a directly tagged item, or an untagged item of an
        order whose order-level warehouse is in scope.
        """
        scope = {str(w) for w in warehouse_ids if w}
        if not scope:
            return set()
        status = choice(status, STATUS_VALUES, "status")

        context = {"warehouse_ids": sorted(scope), "status": status}

        direct_items = self.store.find(
            OrderItem,
            member_of("warehouse_id", scope) & where(status=status),
            operation="resolve.item_level",
        )
        direct = {str(item.order_id) for item in direct_items}

        fallback_orders = self.store.find(Order, member_of("warehouse_id", scope), operation="resolve.order_level")
        fallback = {str(order.id) for order in fallback_orders}

        if status is not None and fallback:
            fallback = self._narrow_by_item_status(fallback - direct, scope, status)

        resolved = direct | fallback
        logger.debug("Resolved warehouse orders", count=len(resolved), **context)
        return resolved

    def _narrow_by_item_status(self, order_ids: set[str], scope: set[str], status: str) -> set[str]:
        # Status lives on items; an order row alone cannot satisfy it
        if not order_ids:
            return set()
        items = self.store.find(
            OrderItem,
            member_of("order_id", order_ids) & where(status=status),
            operation="resolve.fallback_status",
        )
        return {str(item.order_id) for item in items if not item.warehouse_id or str(item.warehouse_id) in scope}

    def attributed_items(self, warehouse_ids: Iterable[str], order_ids: Iterable[str], orders=None) -> list:
        """Items of ``order_ids`` whose effective warehouse is in ``warehouse_ids``.

        ``orders`` may be passed when the caller already holds the parent
        rows, saving the lookup of their order-level warehouse.
        """
        scope = {str(w) for w in warehouse_ids if w}
        order_ids = {str(order_id) for order_id in order_ids}
        if not scope or not order_ids:
            return []

        if orders is None:
            orders = self.store.find(Order, member_of("id", order_ids), operation="attributed_items.orders")
        parents = {str(order.id): order for order in orders}

        items = self.store.find(OrderItem, member_of("order_id", order_ids), operation="attributed_items.items")
        return [
            item for item in items if effective_warehouse(item, parents.get(str(item.order_id))) in scope
        ]

    def owns_item(self, warehouse_ids: Iterable[str], item, order) -> bool:
        return effective_warehouse(item, order) in {str(w) for w in warehouse_ids}
