"""Retailer dashboard overview.

One request resolves the retailer's warehouses, then computes five
independent figures concurrently:

    totalSales        ledger ORDER_REVENUE sum (retailer-wide)
    activeOrders      orders with an active attributed item
    lowStockVariants  variants below the threshold in linked warehouses
    schools           approved / pending school links
    recentOrders      latest attributed orders, enriched for display

Each figure is fault-isolated: if its computation fails the overview
reports a zero/empty default for it and logs the failure.
"""

import structlog

from marketplace.catalogue.product import ProductVariant
from marketplace.catalogue.school import SchoolDirectory
from marketplace.config import settings
from marketplace.dashboard.formatting import recent_order
from marketplace.errors import MarketplaceError
from marketplace.ledger.ledger import total_sales
from marketplace.order.service import RetailerOrderService
from marketplace.shared.concurrency import TaskFailed, fan_out, settle
from marketplace.store.query import OrderFilters, member_of, where
from marketplace.warehouse.warehouse import ProductWarehouse

logger = structlog.get_logger(__name__)

DEFAULTS = {
    "totalSales": 0,
    "activeOrders": 0,
    "lowStockVariants": 0,
    "schools": {"approved": 0, "pending": 0},
    "recentOrders": [],
}


class DashboardAggregator:
    def __init__(
        self,
        store,
        retailer_orders: RetailerOrderService | None = None,
        schools: SchoolDirectory | None = None,
        low_stock_threshold: int | None = None,
        recent_limit: int | None = None,
    ):
        self.store = store
        self.retailer_orders = retailer_orders or RetailerOrderService(store)
        self.schools = schools or SchoolDirectory(store)
        self.low_stock_threshold = low_stock_threshold or settings.low_stock_threshold
        self.recent_limit = recent_limit or settings.recent_orders_limit

    def _warehouses(self, retailer_id: str) -> set[str]:
        try:
            return self.retailer_orders.directory.warehouse_ids(retailer_id)
        except MarketplaceError as exc:
            logger.error("Could not resolve retailer warehouses", retailer_id=str(retailer_id), error=exc.message)
            return set()

    def low_stock_variants(self, scope: set[str]) -> int:
        if not scope:
            return 0
        links = self.store.find(ProductWarehouse, member_of("warehouse_id", scope), operation="low_stock.products")
        product_ids = {str(link.product_id) for link in links}
        if not product_ids:
            return 0
        return self.store.count(
            ProductVariant,
            member_of("product_id", product_ids) & where(stock__lt=self.low_stock_threshold),
            operation="low_stock.variants",
        )

    def recent_orders(self, scope: set[str]) -> list[dict]:
        if not scope:
            return []
        result = self.retailer_orders.orders_in(scope, OrderFilters(), page=1, limit=self.recent_limit)
        return [recent_order(order) for order in result["orders"]]

    def overview(self, retailer_id: str) -> dict:
        scope = self._warehouses(retailer_id)

        results = fan_out(
            self.store.domain,
            {
                "totalSales": lambda: total_sales(self.store, retailer_id),
                "activeOrders": lambda: self.retailer_orders.active_orders_in(scope),
                "lowStockVariants": lambda: self.low_stock_variants(scope),
                "schools": lambda: self.schools.counts_by_status(retailer_id),
                "recentOrders": lambda: self.recent_orders(scope),
            },
        )
        failed = sorted(name for name, value in results.items() if isinstance(value, TaskFailed))
        figures = settle(results, DEFAULTS)

        logger.info(
            "Dashboard overview computed",
            retailer_id=str(retailer_id),
            warehouse_count=len(scope),
            failed_metrics=failed,
        )
        return {
            "totalSales": figures["totalSales"],
            "activeOrders": figures["activeOrders"],
            "lowStockVariants": figures["lowStockVariants"],
            "activeSchools": figures["schools"]["approved"],
            "pendingSchools": figures["schools"]["pending"],
            "recentOrders": figures["recentOrders"],
        }
