"""Declarative field tables between persisted records and outward shapes.

Persisted attributes are snake_case; every shape handed to callers uses
camelCase keys. Each entity declares its table once here and the store
boundary applies it, so no service spells out field renames inline.
"""

from dataclasses import dataclass
from typing import Any, Callable


def camelize(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def money(value) -> float:
    return round(float(value or 0), 2)


def optional_money(value) -> float | None:
    return None if value is None else round(float(value), 2)


def as_int(value) -> int:
    return int(value or 0)


def as_str(value) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class Column:
    attr: str
    key: str | None = None
    default: Any = None
    cast: Callable[[Any], Any] | None = None

    @property
    def external(self) -> str:
        return self.key or camelize(self.attr)

    def fallback(self):
        return self.default() if callable(self.default) else self.default


class Serializer:
    def __init__(self, *columns: Column):
        self.columns = columns

    def dump(self, record) -> dict:
        """Outward (camelCase) shape of a persisted record."""
        data = {}
        for column in self.columns:
            value = getattr(record, column.attr, None)
            if value is None:
                value = column.fallback()
            elif column.cast is not None:
                value = column.cast(value)
            data[column.external] = value
        return data


ORDER = Serializer(
    Column("id", cast=as_str),
    Column("order_number"),
    Column("user_id", cast=as_str),
    Column("status"),
    Column("total_amount", default=0.0, cast=money),
    Column("currency", default="INR"),
    Column("shipping_address", default=dict),
    Column("billing_address"),
    Column("contact_phone"),
    Column("contact_email"),
    Column("payment_method"),
    Column("payment_status", default="pending"),
    Column("payment_data", default=dict),
    Column("warehouse_id", cast=as_str),
    Column("extras", key="metadata", default=dict),
    Column("tracking_number"),
    Column("estimated_delivery_date"),
    Column("created_at"),
    Column("updated_at"),
)

ORDER_ITEM = Serializer(
    Column("id", cast=as_str),
    Column("order_id", cast=as_str),
    Column("product_id", cast=as_str),
    Column("variant_id", cast=as_str),
    Column("sku"),
    Column("title"),
    Column("quantity", default=0, cast=as_int),
    Column("unit_price", default=0.0, cast=money),
    Column("total_price", default=0.0, cast=money),
    Column("product_snapshot", default=dict),
    Column("warehouse_id", cast=as_str),
    Column("dispatch_id"),
    Column("status", default="initialized"),
    Column("created_at"),
)

ORDER_EVENT = Serializer(
    Column("id", cast=as_str),
    Column("order_id", cast=as_str),
    Column("order_item_id", cast=as_str),
    Column("previous_status"),
    Column("new_status"),
    Column("changed_by", cast=as_str),
    Column("note"),
    Column("extras", key="metadata", default=dict),
    Column("created_at"),
)

WAREHOUSE = Serializer(
    Column("id", cast=as_str),
    Column("name"),
    Column("contact_email"),
    Column("contact_phone"),
    Column("address", default=dict),
    Column("address_id", cast=as_str),
    Column("is_verified", default=False),
    Column("extras", key="metadata", default=dict),
    Column("created_at"),
)

WAREHOUSE_ADDRESS = Serializer(
    Column("id", cast=as_str),
    Column("line1"),
    Column("line2"),
    Column("city"),
    Column("state"),
    Column("pincode"),
    Column("country"),
)

VARIANT = Serializer(
    Column("id", cast=as_str),
    Column("sku"),
    Column("price", default=0.0, cast=money),
    Column("compare_at_price", cast=optional_money),
    Column("stock"),
    Column("weight"),
    Column("extras", key="metadata", default=dict),
)

OPTION_VALUE = Serializer(
    Column("id", cast=as_str),
    Column("value"),
    Column("image_url"),
    Column("sort_order"),
)

ATTRIBUTE = Serializer(
    Column("id", cast=as_str),
    Column("name"),
    Column("position"),
)

SCHOOL_LINK = Serializer(
    Column("id", cast=as_str),
    Column("retailer_id", cast=as_str),
    Column("school_id", cast=as_str),
    Column("status"),
    Column("created_at"),
)
