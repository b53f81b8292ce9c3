"""Persistence operations for orders, their items and their event log.

Everything returned from here is a plain outward shape (camelCase keys):
an order with nested ``items`` (enriched) and, for single-order reads,
its ``events``.
"""

from collections import defaultdict
from typing import Iterable

import structlog
from protean.utils.query import Q

from marketplace.errors import NotFoundError
from marketplace.order.aggregation import StatusAggregator
from marketplace.order.creation import OrderPlacement
from marketplace.order.enrichment import EnrichmentPipeline
from marketplace.order.history import PAYMENT_UPDATED, OrderEvent
from marketplace.order.item import OrderItem
from marketplace.order.order import PAYMENT_STATUS_VALUES, STATUS_VALUES, Order
from marketplace.shared.pagination import Paginator
from marketplace.store.query import OrderFilters, member_of, where
from marketplace.store.serializers import ORDER, ORDER_EVENT, ORDER_ITEM

logger = structlog.get_logger(__name__)

SORTABLE_COLUMNS = ("created_at", "updated_at", "total_amount", "order_number", "status")


def _chronological(rows) -> list:
    return sorted(rows, key=lambda row: (row.created_at, str(row.id)))


class OrderStore:
    def __init__(self, store, enrichment: EnrichmentPipeline | None = None, paginator: Paginator | None = None):
        self.store = store
        self.enrichment = enrichment or EnrichmentPipeline(store)
        self.paginator = paginator or Paginator(store)
        self.placement = OrderPlacement(store)

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------
    def order(self, order_id: str) -> Order:
        return self.store.get(Order, order_id, operation="get_order")

    def item(self, order_id: str, item_id: str) -> OrderItem:
        item = self.store.get(OrderItem, item_id, operation="get_order_item")
        if str(item.order_id) != str(order_id):
            raise NotFoundError("Order item not found", order_id=str(order_id), item_id=str(item_id))
        return item

    def items_by_order(self, order_ids: Iterable[str], criteria: Q | None = None) -> dict[str, list]:
        order_ids = {str(order_id) for order_id in order_ids}
        if not order_ids:
            return {}
        grouped = defaultdict(list)
        criteria = member_of("order_id", order_ids) & (criteria or Q())
        items = self.store.find(OrderItem, criteria, operation="order_items")
        for item in items:
            grouped[str(item.order_id)].append(item)
        return grouped

    def events(self, order_id: str) -> list[OrderEvent]:
        return _chronological(self.store.find(OrderEvent, where(order_id=order_id), operation="order_events"))

    def item_events(self, order_id: str, item_id: str) -> list[dict]:
        """Status history of one line item, oldest first."""
        item = self.item(order_id, item_id)
        events = self.store.find(OrderEvent, where(order_item_id=item.id), operation="order_item_events")
        return [ORDER_EVENT.dump(event) for event in _chronological(events)]

    def append_event(
        self, order_id, new_status, previous_status=None, changed_by=None, note=None, metadata=None, order_item_id=None
    ):
        with self.store.guard("append_event", order_id=str(order_id)):
            event = OrderEvent.record(
                order_id=order_id,
                new_status=new_status,
                previous_status=previous_status,
                changed_by=changed_by,
                note=note,
                extras=metadata,
                order_item_id=order_item_id,
            )
        return self.store.add(event, operation="append_event")

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------
    def present(self, order, items, events=None, enrich: bool = True) -> dict:
        data = ORDER.dump(order)
        data["items"] = [ORDER_ITEM.dump(item) for item in _chronological(items)]
        if enrich:
            data["items"] = self.enrichment.enrich(data["items"])
        if events is not None:
            data["events"] = [ORDER_EVENT.dump(event) for event in events]
        return data

    def present_many(self, orders, items_by_order: dict, enrich: bool = True) -> list[dict]:
        shaped = []
        for order in orders:
            data = ORDER.dump(order)
            data["items"] = [ORDER_ITEM.dump(item) for item in _chronological(items_by_order.get(str(order.id), []))]
            shaped.append(data)
        return self.enrichment.enrich_orders(shaped) if enrich else shaped

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def create(self, **fields) -> dict:
        """Place an order; see ``OrderPlacement.place`` for the arguments."""
        order, items, event = self.placement.place(**fields)
        return self.present(order, items, [event])

    def get_by_id(self, order_id: str) -> dict:
        order = self.order(order_id)
        items = self.items_by_order([order.id]).get(str(order.id), [])
        return self.present(order, items, self.events(order.id))

    def update_status(self, order_id, status, changed_by=None, note=None, metadata=None) -> dict:
        order = self.order(order_id)
        with self.store.guard("update_status", order_id=str(order_id), status=status):
            previous = order.transition_to(status, changed_by=changed_by)
            order.merge_extras(metadata)
        self.store.add(order, operation="update_status")
        self.append_event(order.id, status, previous, changed_by, note, metadata)

        logger.info("Order status updated", order_id=str(order.id), previous_status=previous, new_status=status)
        return ORDER.dump(order)

    def update_item_status(self, order_id, item_id, status, changed_by=None, note=None, metadata=None) -> dict:
        item = self.item(order_id, item_id)
        with self.store.guard("update_item_status", order_id=str(order_id), item_id=str(item_id), status=status):
            previous = item.transition_to(status, changed_by=changed_by)
        self.store.add(item, operation="update_item_status")
        self.append_event(item.order_id, status, previous, changed_by, note, metadata, order_item_id=item.id)

        logger.info(
            "Order item status updated",
            order_id=str(order_id),
            item_id=str(item_id),
            previous_status=previous,
            new_status=status,
        )
        return ORDER_ITEM.dump(item)

    def update_payment_status(self, order_id, payment_status, payment_data=None, changed_by=None) -> dict:
        order = self.order(order_id)
        with self.store.guard("update_payment_status", order_id=str(order_id), payment_status=payment_status):
            previous = order.record_payment(payment_status, payment_data)
        self.store.add(order, operation="update_payment_status")
        self.append_event(
            order.id,
            PAYMENT_UPDATED,
            changed_by=changed_by,
            note=f"Payment status changed from {previous} to {payment_status}",
            metadata={"paymentStatus": payment_status, "previousPaymentStatus": previous},
        )
        return ORDER.dump(order)

    def paginate(self, criteria: Q | None, page=1, limit=None, sort_by="created_at", sort_order="desc") -> dict:
        """One page of order rows (not yet shaped) with pagination metadata."""
        return self.paginator.paginate(
            Order,
            criteria,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            sortable=SORTABLE_COLUMNS,
            operation="search_orders",
        )

    def search(self, filters: OrderFilters, page=1, limit=None, sort_by="created_at", sort_order="desc") -> dict:
        filters.validated(STATUS_VALUES, PAYMENT_STATUS_VALUES)
        result = self.paginate(filters.order_criteria(), page, limit, sort_by, sort_order)
        orders = result["rows"]
        items = self.items_by_order(order.id for order in orders)
        return {"orders": self.present_many(orders, items), "pagination": result["pagination"]}

    def by_user(self, user_id: str, page=1, limit=None, status: str | None = None) -> dict:
        return self.search(OrderFilters(user_id=user_id, status=status), page=page, limit=limit)

    def statistics(self, user_id: str | None = None, start_date=None, end_date=None) -> dict:
        """Order counts and revenue, for one customer or for every order."""
        filters = OrderFilters(user_id=user_id, start_date=start_date, end_date=end_date)
        filters.validated(STATUS_VALUES, PAYMENT_STATUS_VALUES)
        orders = self.store.find(Order, filters.order_criteria(), operation="order_statistics")
        return StatusAggregator.order_summary(orders)
