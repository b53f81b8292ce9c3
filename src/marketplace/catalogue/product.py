"""Catalogue records read by order placement and item enrichment.

Product CRUD belongs to the catalogue service; these aggregates carry only
the fields the order side consumes. A variant selects up to three option
values (size, colour, ...), each of which belongs to a product attribute.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Dict, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.order.order import utcnow

OPTION_SLOTS = ("option_value_1", "option_value_2", "option_value_3")


def _take(stocked, label, quantity: int) -> None:
    if quantity > (stocked.stock or 0):
        message = f"Insufficient stock for {label}: available {stocked.stock}, requested {quantity}"
        raise ValidationError({"stock": [message]})
    stocked.stock = (stocked.stock or 0) - quantity


@marketplace.aggregate
class Product:
    title: String(required=True, max_length=255)
    description: Text()
    base_price: Float(min_value=0.0, default=0.0)
    stock: Integer(min_value=0, default=0)
    is_active: Boolean(default=True)
    created_at: DateTime(default=utcnow)

    # Stock here only applies to products sold without variants
    def reserve(self, quantity: int) -> None:
        _take(self, self.title or self.id, quantity)

    def release(self, quantity: int) -> None:
        self.stock = (self.stock or 0) + quantity


@marketplace.aggregate
class ProductVariant:
    product_id: Identifier(required=True)
    sku: String(max_length=100)
    price: Float(min_value=0.0)
    compare_at_price: Float(min_value=0.0)
    stock: Integer(min_value=0, default=0)
    weight: Float()
    extras: Dict()
    option_value_1: Identifier()
    option_value_2: Identifier()
    option_value_3: Identifier()

    def option_value_ids(self) -> list[str]:
        """Option value ids in slot order, skipping empty slots."""
        return [str(value) for value in (getattr(self, slot) for slot in OPTION_SLOTS) if value]

    def reserve(self, quantity: int) -> None:
        _take(self, self.sku or self.id, quantity)

    def release(self, quantity: int) -> None:
        self.stock = (self.stock or 0) + quantity


@marketplace.aggregate
class ProductAttribute:
    name: String(required=True, max_length=100)
    position: Integer(default=0)
    is_required: Boolean(default=False)


@marketplace.aggregate
class ProductOptionValue:
    attribute_id: Identifier(required=True)
    value: String(required=True, max_length=100)
    sort_order: Integer(default=0)
    image_url: String(max_length=500)
