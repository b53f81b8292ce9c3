"""Pydantic request/response schemas for the marketplace API.

Request bodies accept camelCase keys (``productId``) as well as their
snake_case names; services receive plain snake_case values.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineSchema(_Body):
    product_id: str
    variant_id: str | None = None
    warehouse_id: str | None = None
    quantity: int = Field(ge=1)
    sku: str | None = None
    title: str | None = None
    size: str | None = None
    color: str | None = None


class CreateOrderRequest(_Body):
    user_id: str
    items: list[OrderLineSchema] = Field(min_length=1)
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any] | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    payment_method: str = "cod"
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "userId": "user-001",
                    "items": [{"productId": "prod-001", "variantId": "var-001", "quantity": 2}],
                    "shippingAddress": {"name": "Asha Rao", "city": "Pune", "pincode": "411001"},
                    "contactEmail": "asha@example.com",
                }
            ]
        },
    )


class CancelOrderRequest(_Body):
    user_id: str
    reason: str = "Cancelled by user"


class PaymentUpdateRequest(_Body):
    payment_status: str
    payment_data: dict[str, Any] | None = None


class UpdateStatusRequest(_Body):
    status: str
    note: str | None = None
    metadata: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Warehouses and schools
# ---------------------------------------------------------------------------
class CreateWarehouseRequest(_Body):
    name: str = Field(min_length=1)
    contact_email: str | None = None
    contact_phone: str | None = None
    address: dict[str, Any] | None = None
    address_id: str | None = None
    metadata: dict[str, Any] | None = None


class UpdateWarehouseRequest(_Body):
    name: str | None = Field(default=None, min_length=1)
    contact_email: str | None = None
    contact_phone: str | None = None
    address: dict[str, Any] | None = None
    address_id: str | None = None
    is_verified: bool | None = None
    metadata: dict[str, Any] | None = None


class LinkSchoolRequest(_Body):
    school_id: str
    status: str = "pending"


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class Envelope(BaseModel):
    success: bool = True
    data: Any = None
    message: str | None = None
