from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture

from marketplace.catalogue.product import Product, ProductAttribute, ProductOptionValue, ProductVariant
from marketplace.catalogue.school import ProductSchool, RetailerSchool, School
from marketplace.ledger.ledger import SellerLedgerEntry, TransactionType
from marketplace.order.item import OrderItem
from marketplace.order.order import Order
from marketplace.store import Store
from marketplace.warehouse.warehouse import ProductWarehouse, RetailerWarehouse, Warehouse

ADDRESS = {
    "name": "Asha Rao",
    "line1": "12 MG Road",
    "city": "Pune",
    "state": "MH",
    "pincode": "411001",
}


@pytest.fixture()
def address():
    return dict(ADDRESS)


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture()
def store():
    from marketplace.domain import marketplace

    return Store(marketplace)


class Seeder:
    """Writes catalogue, warehouse and order rows with predictable ids.

    Every order or item gets a ``created_at`` one minute after the previous
    one, so ids seeded in ascending order also sort ascending in time.
    """

    def __init__(self, store: Store):
        self.store = store
        self._clock = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    def tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def _add(self, record):
        return self.store.add(record)

    # Catalogue
    def product(self, id, title="School Shirt", base_price=450.0, stock=50, **fields):
        return self._add(Product(id=id, title=title, base_price=base_price, stock=stock, **fields))

    def variant(self, id, product_id, price=499.0, stock=20, sku=None, options=(), **fields):
        slots = dict(zip(("option_value_1", "option_value_2", "option_value_3"), options))
        variant = ProductVariant(
            id=id, product_id=product_id, price=price, stock=stock, sku=sku or f"SKU-{id}", **slots, **fields
        )
        return self._add(variant)

    def attribute(self, id, name, position=0):
        return self._add(ProductAttribute(id=id, name=name, position=position))

    def option(self, id, attribute_id, value, sort_order=0):
        return self._add(ProductOptionValue(id=id, attribute_id=attribute_id, value=value, sort_order=sort_order))

    def school(self, id, name, city="Pune"):
        return self._add(School(id=id, name=name, city=city))

    def product_school(self, product_id, school_id):
        return self._add(ProductSchool(product_id=product_id, school_id=school_id))

    def retailer_school(self, retailer_id, school_id, status="approved"):
        return self._add(RetailerSchool(retailer_id=retailer_id, school_id=school_id, status=status))

    # Warehouses
    def warehouse(self, id, name=None, retailer_id=None, **fields):
        warehouse = self._add(Warehouse(id=id, name=name or f"Warehouse {id}", **fields))
        if retailer_id:
            self._add(RetailerWarehouse(retailer_id=retailer_id, warehouse_id=id))
        return warehouse

    def product_warehouse(self, product_id, warehouse_id):
        return self._add(ProductWarehouse(product_id=product_id, warehouse_id=warehouse_id))

    # Orders
    def order(self, id, user_id="user-1", warehouse_id=None, created_at=None, **fields):
        values = {
            "order_number": f"ORD-{id}",
            "user_id": user_id,
            "total_amount": 0.0,
            "shipping_address": ADDRESS,
            "contact_email": f"{user_id}@example.com",
            "contact_phone": "9000000000",
            "warehouse_id": warehouse_id,
            "created_at": created_at or self.tick(),
        }
        values.update(fields)
        return self._add(Order(id=id, **values))

    def item(
        self,
        id,
        order_id,
        status="initialized",
        warehouse_id=None,
        quantity=1,
        unit_price=100.0,
        product_id="prod-1",
        **fields,
    ):
        return self._add(
            OrderItem.for_line(
                order_id=order_id,
                product_id=product_id,
                title=fields.pop("title", "School Shirt"),
                quantity=quantity,
                unit_price=unit_price,
                id=id,
                status=status,
                warehouse_id=warehouse_id,
                created_at=fields.pop("created_at", None) or self.tick(),
                **fields,
            )
        )

    def ledger(self, retailer_id, amount, transaction_type=TransactionType.ORDER_REVENUE.value, order_id=None):
        return self._add(
            SellerLedgerEntry(
                retailer_id=retailer_id,
                amount=amount,
                transaction_type=transaction_type,
                order_id=order_id,
            )
        )


@pytest.fixture()
def seed(store):
    return Seeder(store)


@pytest.fixture()
def attribution_world(seed):
    """Warehouses W1..W3 with the orders used across the attribution tests.

    * W1: O1 (initialized), O2 (shipped), O3 (delivered), item-tagged
    * W2: O4 tagged at order level only, its items untagged
    * W3: linked to nothing
    """
    seed.warehouse("wh-1", retailer_id="ret-1")
    seed.warehouse("wh-2", retailer_id="ret-1")
    seed.warehouse("wh-3", retailer_id="ret-2")

    seed.order("ord-01", payment_status="paid")
    seed.item("item-01", "ord-01", status="initialized", warehouse_id="wh-1", unit_price=100.0)
    seed.order("ord-02")
    seed.item("item-02", "ord-02", status="shipped", warehouse_id="wh-1", unit_price=200.0)
    seed.order("ord-03", payment_status="paid")
    seed.item("item-03", "ord-03", status="delivered", warehouse_id="wh-1", unit_price=300.0, quantity=2)

    seed.order("ord-04", warehouse_id="wh-2")
    seed.item("item-04a", "ord-04", unit_price=50.0)
    seed.item("item-04b", "ord-04", unit_price=25.0)
    return seed
