"""Order placement.

Placement writes several rows with no multi-statement transaction
underneath, so it runs as a saga (see ``marketplace.shared.saga``):

    1. insert the order row           undo: delete it
    2. insert each line item          undo: delete it
    3. reserve each line's stock      undo: release it
       (the variant's, or the product's for a line without a variant)
    4. append the "Order created" event

A failure at any step undoes the completed ones in reverse and the
original error reaches the caller with the rolled-back ``order_id`` in
its details.
"""

import secrets
import string
import time

import structlog

from marketplace.catalogue.product import Product, ProductVariant
from marketplace.config import settings
from marketplace.errors import InvalidRequestError, MarketplaceError, NotFoundError
from marketplace.order.history import CREATED_NOTE, OrderEvent
from marketplace.order.item import OrderItem, line_total
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.saga import Saga
from marketplace.store.query import member_of

logger = structlog.get_logger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def generate_order_number() -> str:
    """``ORD-<epoch millis>-<6 base36 chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


class OrderPlacement:
    def __init__(self, store):
        self.store = store

    # ------------------------------------------------------------------
    # Input checks and pricing
    # ------------------------------------------------------------------
    @staticmethod
    def _check_lines(items) -> None:
        if not items:
            raise InvalidRequestError("An order needs at least one item", field="items")
        for index, line in enumerate(items):
            if not line.get("product_id"):
                raise InvalidRequestError("product_id is required", field=f"items[{index}].product_id")
            quantity = line.get("quantity")
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise InvalidRequestError("quantity must be a positive integer", field=f"items[{index}].quantity")

    def _catalogue(self, items) -> tuple[dict, dict]:
        product_ids = {str(line["product_id"]) for line in items}
        variant_ids = {str(line["variant_id"]) for line in items if line.get("variant_id")}

        products = self.store.find(Product, member_of("id", product_ids), operation="place_order.products")
        variants = (
            self.store.find(ProductVariant, member_of("id", variant_ids), operation="place_order.variants")
            if variant_ids
            else []
        )
        return {str(p.id): p for p in products}, {str(v.id): v for v in variants}

    @staticmethod
    def _price(line, product, variant) -> dict:
        """Resolve a line's catalogue price, title and purchase-time snapshot.

        The price always comes from the catalogue: the variant's price, else
        the product's base price. A price sent with the line is ignored.
        """
        if variant is not None and variant.price is not None:
            unit_price = float(variant.price)
        elif product is not None:
            unit_price = float(product.base_price or 0)
        else:
            unit_price = 0.0

        snapshot = {}
        if product is not None:
            snapshot = {
                "title": product.title,
                "description": product.description,
                "price": unit_price,
            }
            for key in ("size", "color"):
                if line.get(key):
                    snapshot[key] = line[key]

        return {
            "product_id": str(line["product_id"]),
            "variant_id": str(line["variant_id"]) if line.get("variant_id") else None,
            "warehouse_id": str(line["warehouse_id"]) if line.get("warehouse_id") else None,
            "sku": line.get("sku") or (variant.sku if variant is not None else None),
            "title": line.get("title") or (product.title if product is not None else str(line["product_id"])),
            "quantity": line["quantity"],
            "unit_price": round(unit_price, 2),
            "product_snapshot": snapshot,
        }

    # ------------------------------------------------------------------
    # Saga steps
    # ------------------------------------------------------------------
    def _build_item(self, order, line, products, variants) -> OrderItem:
        product = products.get(line["product_id"])
        if product is None or not product.is_active:
            raise NotFoundError(f"Product {line['product_id']} not found or inactive", product_id=line["product_id"])
        if line["variant_id"] and line["variant_id"] not in variants:
            raise NotFoundError(f"Variant {line['variant_id']} not found", variant_id=line["variant_id"])

        with self.store.guard("place_order.item", product_id=line["product_id"]):
            return OrderItem.for_line(
                order_id=order.id,
                product_id=line["product_id"],
                title=line["title"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                variant_id=line["variant_id"],
                warehouse_id=line["warehouse_id"],
                sku=line["sku"],
                product_snapshot=line["product_snapshot"],
                status=OrderStatus.INITIALIZED.value,
            )

    def _reserve(self, stocked, quantity: int) -> None:
        """Take ``quantity`` from a variant, or from a product sold without variants."""
        with self.store.guard("place_order.reserve_stock", stock_id=str(stocked.id)):
            stocked.reserve(quantity)
        self.store.add(stocked, operation="place_order.reserve_stock")

    def _release(self, stocked, quantity: int) -> None:
        stocked.release(quantity)
        self.store.add(stocked, operation="place_order.release_stock")

    # ------------------------------------------------------------------
    def place(
        self,
        user_id: str,
        items: list[dict],
        shipping_address: dict,
        billing_address: dict | None = None,
        contact_email: str | None = None,
        contact_phone: str | None = None,
        payment_method: str = "cod",
        metadata: dict | None = None,
        currency: str | None = None,
        order_id: str | None = None,
    ) -> tuple[Order, list[OrderItem], OrderEvent]:
        if not user_id:
            raise InvalidRequestError("user_id is required", field="user_id")
        if not shipping_address:
            raise InvalidRequestError("shipping_address is required", field="shipping_address")
        self._check_lines(items)

        products, variants = self._catalogue(items)
        lines = [
            self._price(line, products.get(str(line["product_id"])), variants.get(str(line.get("variant_id"))))
            for line in items
        ]
        for line in lines:
            variant = variants.get(line["variant_id"]) if line["variant_id"] else None
            if variant is not None and str(variant.product_id) != line["product_id"]:
                raise InvalidRequestError(
                    "Variant does not belong to product",
                    product_id=line["product_id"],
                    variant_id=line["variant_id"],
                )

        order_fields = {
            "order_number": generate_order_number(),
            "user_id": user_id,
            "total_amount": round(sum(line_total(line["unit_price"], line["quantity"]) for line in lines), 2),
            "currency": currency or settings.default_currency,
            "payment_method": payment_method,
            "shipping_address": shipping_address,
            "billing_address": billing_address or shipping_address,
            "contact_email": contact_email,
            "contact_phone": contact_phone,
            "warehouse_id": next((line["warehouse_id"] for line in lines if line["warehouse_id"]), None),
            "extras": metadata or {},
        }
        if order_id:
            order_fields["id"] = order_id
        with self.store.guard("place_order.order", user_id=str(user_id)):
            order = Order.place(**order_fields)

        inserted: list[OrderItem] = []
        try:
            with Saga("place_order", order_id=str(order.id), user_id=str(user_id)) as saga:
                saga.run(
                    "insert_order",
                    lambda: self.store.add(order, operation="place_order.order"),
                    compensate=lambda: self.store.delete(order, operation="place_order.rollback_order"),
                )

                for index, line in enumerate(lines):
                    item = self._build_item(order, line, products, variants)
                    saga.run(
                        f"insert_item[{index}]",
                        lambda item=item: self.store.add(item, operation="place_order.item"),
                        compensate=lambda item=item: self.store.delete(item, operation="place_order.rollback_item"),
                    )
                    inserted.append(item)

                for line in lines:
                    if line["variant_id"]:
                        stocked = variants[line["variant_id"]]
                    else:
                        stocked = products[line["product_id"]]
                    saga.run(
                        f"reserve_stock[{stocked.id}]",
                        lambda stocked=stocked, qty=line["quantity"]: self._reserve(stocked, qty),
                        compensate=lambda stocked=stocked, qty=line["quantity"]: self._release(stocked, qty),
                    )

                event = saga.run(
                    "record_created_event",
                    lambda: self.store.add(
                        OrderEvent.record(
                            order_id=order.id,
                            new_status=OrderStatus.INITIALIZED.value,
                            changed_by=user_id,
                            note=CREATED_NOTE,
                        ),
                        operation="place_order.event",
                    ),
                )
        except MarketplaceError as exc:
            exc.details.setdefault("order_id", str(order.id))
            logger.error(
                "Order placement failed",
                order_id=str(order.id),
                user_id=str(user_id),
                error=exc.message,
                kind=exc.kind,
            )
            raise

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(inserted),
            total_amount=order.total_amount,
        )
        return order, inserted, event
