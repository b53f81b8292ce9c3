"""Warehouses and their links to retailers and products."""

from protean.fields import Boolean, DateTime, Dict, Identifier, String

from marketplace.domain import marketplace
from marketplace.order.order import utcnow


@marketplace.aggregate
class WarehouseAddress:
    line1: String(required=True, max_length=255)
    line2: String(max_length=255)
    city: String(required=True, max_length=100)
    state: String(max_length=100)
    pincode: String(max_length=20)
    country: String(max_length=100, default="India")


@marketplace.aggregate
class Warehouse:
    """A fulfillment location.

    The address is either stored inline in ``address`` or kept as a
    separate ``WarehouseAddress`` row referenced by ``address_id``.
    """

    name: String(required=True, max_length=255)
    contact_email: String(max_length=255)
    contact_phone: String(max_length=20)
    address: Dict()
    address_id: Identifier()
    is_verified: Boolean(default=False)
    extras: Dict()
    created_at: DateTime(default=utcnow)
    updated_at: DateTime(default=utcnow)


@marketplace.aggregate
class RetailerWarehouse:
    retailer_id: Identifier(required=True)
    warehouse_id: Identifier(required=True)
    created_at: DateTime(default=utcnow)


@marketplace.aggregate
class ProductWarehouse:
    product_id: Identifier(required=True)
    warehouse_id: Identifier(required=True)
