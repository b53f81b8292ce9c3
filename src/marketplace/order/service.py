"""Order services for customers and for retailers.

``OrderService`` covers the customer side: placing, reading, cancelling
and recording payment. ``RetailerOrderService`` covers everything scoped
to a retailer's warehouses; it resolves which orders and items the
warehouses are responsible for before reading or changing anything.
"""

from collections import defaultdict

import structlog

from marketplace.catalogue.product import Product, ProductVariant
from marketplace.config import settings
from marketplace.errors import InvalidRequestError, MarketplaceError, NotFoundError
from marketplace.order.aggregation import StatusAggregator
from marketplace.order.order import (
    PAYMENT_STATUS_VALUES,
    STATUS_VALUES,
    Order,
    OrderStatus,
    PaymentStatus,
)
from marketplace.order.store import SORTABLE_COLUMNS, OrderStore
from marketplace.shared.pagination import empty_page
from marketplace.store.query import OrderFilters, aware, member_of, ordering
from marketplace.warehouse.attribution import WarehouseAttributionResolver
from marketplace.warehouse.directory import WarehouseDirectory

logger = structlog.get_logger(__name__)


class OrderService:
    def __init__(self, store, orders: OrderStore | None = None):
        self.store = store
        self.orders = orders or OrderStore(store)

    def place(self, **fields) -> dict:
        return self.orders.create(**fields)

    def get(self, order_id: str, user_id: str | None = None) -> dict:
        order = self.orders.get_by_id(order_id)
        if user_id is not None and order["userId"] != str(user_id):
            raise NotFoundError("Order not found", order_id=str(order_id))
        return order

    def for_user(self, user_id: str, page=1, limit=None, status: str | None = None) -> dict:
        return self.orders.by_user(user_id, page=page, limit=limit, status=status)

    def search(self, filters: OrderFilters, page=1, limit=None, sort_by="created_at", sort_order="desc") -> dict:
        return self.orders.search(filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)

    def item_events(self, order_id: str, item_id: str, user_id: str | None = None) -> list[dict]:
        if user_id is not None and str(self.orders.order(order_id).user_id) != str(user_id):
            raise NotFoundError("Order not found", order_id=str(order_id))
        return self.orders.item_events(order_id, item_id)

    def stats(self, user_id: str | None = None, start_date=None, end_date=None) -> dict:
        return self.orders.statistics(user_id=user_id, start_date=start_date, end_date=end_date)

    def update_status(self, order_id, status, changed_by=None, note=None, metadata=None) -> dict:
        return self.orders.update_status(order_id, status, changed_by=changed_by, note=note, metadata=metadata)

    def cancel(self, order_id: str, user_id: str, reason: str = "Cancelled by user") -> dict:
        order = self.orders.order(order_id)
        if str(order.user_id) != str(user_id):
            raise NotFoundError("Order not found", order_id=str(order_id))
        if not order.is_cancellable:
            raise InvalidRequestError(
                f"Order cannot be cancelled in status '{order.status}'",
                order_id=str(order_id),
                status=order.status,
            )

        updated = self.orders.update_status(order_id, OrderStatus.CANCELLED.value, changed_by=user_id, note=reason)
        self._restock(order_id)
        return updated

    def _restock(self, order_id: str) -> None:
        """Return the reserved stock of a cancelled order; failures are logged only.

        Lines with a variant give stock back to the variant, lines without
        one to the product.
        """
        items = self.orders.items_by_order([order_id]).get(str(order_id), [])
        quantities = {ProductVariant: defaultdict(int), Product: defaultdict(int)}
        for item in items:
            if item.variant_id:
                quantities[ProductVariant][str(item.variant_id)] += int(item.quantity or 0)
            else:
                quantities[Product][str(item.product_id)] += int(item.quantity or 0)

        for cls, by_id in quantities.items():
            if not by_id:
                continue
            try:
                for stocked in self.store.find(cls, member_of("id", by_id), operation="restock.lookup"):
                    stocked.release(by_id[str(stocked.id)])
                    self.store.add(stocked, operation="restock.release")
            except MarketplaceError as exc:
                logger.error(
                    "Failed to restock cancelled order",
                    order_id=str(order_id),
                    stock=cls.__name__,
                    error=exc.message,
                )

    def update_payment_status(self, order_id, payment_status, payment_data=None, changed_by=None) -> dict:
        updated = self.orders.update_payment_status(
            order_id, payment_status, payment_data=payment_data, changed_by=changed_by
        )
        if payment_status == PaymentStatus.PAID.value and updated["status"] == OrderStatus.INITIALIZED.value:
            updated = self.orders.update_status(
                order_id,
                OrderStatus.PROCESSED.value,
                changed_by=changed_by,
                note="Payment confirmed - auto-processed",
            )
        logger.info("Payment status updated", order_id=str(order_id), payment_status=payment_status)
        return updated


class RetailerOrderService:
    def __init__(
        self,
        store,
        orders: OrderStore | None = None,
        directory: WarehouseDirectory | None = None,
        resolver: WarehouseAttributionResolver | None = None,
    ):
        self.store = store
        self.orders = orders or OrderStore(store)
        self.directory = directory or WarehouseDirectory(store)
        self.resolver = resolver or WarehouseAttributionResolver(store)

    def scope(self, retailer_id: str, warehouse_id: str | None = None) -> set[str]:
        """Warehouses the request covers: one linked warehouse, or all of them."""
        if warehouse_id:
            self.directory.require_linked(retailer_id, warehouse_id)
            return {str(warehouse_id)}
        return self.directory.warehouse_ids(retailer_id)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def orders_for(
        self,
        retailer_id: str,
        warehouse_id: str | None = None,
        filters: OrderFilters | None = None,
        page=1,
        limit=None,
        sort_by="created_at",
        sort_order="desc",
    ) -> dict:
        """Paginated orders attributed to the retailer's warehouses.

        Each order carries only the items its warehouses fulfil.
        """
        filters = (filters or OrderFilters()).validated(STATUS_VALUES, PAYMENT_STATUS_VALUES)
        page, limit = self.orders.paginator.validate(page, limit if limit is not None else settings.default_page_limit)
        ordering(sort_by, sort_order, SORTABLE_COLUMNS)

        scope = self.scope(retailer_id, warehouse_id)
        return self.orders_in(scope, filters, page, limit, sort_by, sort_order)

    def orders_in(
        self, scope: set[str], filters: OrderFilters, page, limit, sort_by="created_at", sort_order="desc"
    ) -> dict:
        candidates = self.resolver.resolve(scope, filters.status) if scope else set()
        if not candidates:
            empty = empty_page(page, limit)
            return {"orders": empty["rows"], "pagination": empty["pagination"]}

        criteria = member_of("id", candidates) & filters.order_criteria(include_status=False)
        result = self.orders.paginate(criteria, page, limit, sort_by, sort_order)

        orders = result["rows"]
        grouped = defaultdict(list)
        for item in self.resolver.attributed_items(scope, (o.id for o in orders), orders=orders):
            grouped[str(item.order_id)].append(item)

        return {"orders": self.orders.present_many(orders, grouped), "pagination": result["pagination"]}

    def order_detail(self, retailer_id: str, order_id: str) -> dict:
        order = self.orders.order(order_id)
        items = self.resolver.attributed_items(self.scope(retailer_id), [order.id], orders=[order])
        if not items:
            raise NotFoundError("Order not found", order_id=str(order_id), retailer_id=str(retailer_id))
        return self.orders.present(order, items, self.orders.events(order.id))

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    def stats(self, retailer_id: str, warehouse_id: str | None = None, start_date=None, end_date=None) -> dict:
        """Fulfillment and revenue figures for one warehouse or all of a retailer's."""
        start_date, end_date = aware(start_date), aware(end_date)
        if start_date and end_date and start_date > end_date:
            raise InvalidRequestError("startDate must not be after endDate", field="startDate")

        scope = self.scope(retailer_id, warehouse_id)
        order_ids = self.resolver.resolve(scope) if scope else set()
        if not order_ids:
            return StatusAggregator.summarize([], [])

        candidates = self.store.find(Order, member_of("id", order_ids), operation="stats.orders")
        items = self.resolver.attributed_items(scope, order_ids, orders=candidates)

        attributed = {str(item.order_id) for item in items}
        orders = [
            order
            for order in candidates
            if str(order.id) in attributed
            and (start_date is None or order.created_at >= start_date)
            and (end_date is None or order.created_at <= end_date)
        ]
        return StatusAggregator.summarize(items, orders)

    def active_orders(self, retailer_id: str) -> int:
        return self.active_orders_in(self.scope(retailer_id))

    def active_orders_in(self, scope: set[str]) -> int:
        """Distinct orders with an active item attributed to ``scope``."""
        order_ids = self.resolver.resolve(scope) if scope else set()
        if not order_ids:
            return 0
        return StatusAggregator.active_orders(self.resolver.attributed_items(scope, order_ids))

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------
    def update_order_status(self, retailer_id, order_id, status, note=None, metadata=None) -> dict:
        order = self.orders.order(order_id)
        if not self.resolver.attributed_items(self.scope(retailer_id), [order.id], orders=[order]):
            raise NotFoundError("Order not found", order_id=str(order_id), retailer_id=str(retailer_id))
        return self.orders.update_status(order_id, status, changed_by=retailer_id, note=note, metadata=metadata)

    def update_item_status(self, retailer_id, order_id, item_id, status, note=None, metadata=None) -> dict:
        item = self.orders.item(order_id, item_id)
        order = self.orders.order(order_id)
        if not self.resolver.owns_item(self.scope(retailer_id), item, order):
            raise NotFoundError(
                "Order item not found in your warehouses",
                order_id=str(order_id),
                item_id=str(item_id),
            )
        return self.orders.update_item_status(
            order_id, item_id, status, changed_by=retailer_id, note=note, metadata=metadata
        )
