"""FastAPI routes for the marketplace: customer orders and the retailer console.

Retailer routes identify the caller by the ``X-Retailer-Id`` header.
Every response is wrapped as ``{"success": true, "data": ...}``; failures
are rendered by ``marketplace.api.errors``.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Header, Query

from marketplace.api.schemas import (
    CancelOrderRequest,
    CreateOrderRequest,
    CreateWarehouseRequest,
    Envelope,
    LinkSchoolRequest,
    PaymentUpdateRequest,
    UpdateStatusRequest,
    UpdateWarehouseRequest,
)
from marketplace.catalogue.school import SchoolDirectory
from marketplace.config import settings
from marketplace.dashboard.overview import DashboardAggregator
from marketplace.domain import marketplace
from marketplace.errors import InvalidRequestError
from marketplace.order.service import OrderService, RetailerOrderService
from marketplace.store import Store
from marketplace.store.query import OrderFilters
from marketplace.store.serializers import SCHOOL_LINK
from marketplace.utils.logging import add_context
from marketplace.warehouse.directory import WarehouseDirectory


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_store() -> Store:
    return Store(marketplace)


def retailer_id(x_retailer_id: str | None = Header(default=None)) -> str:
    if not x_retailer_id:
        raise InvalidRequestError("X-Retailer-Id header is required", field="X-Retailer-Id")
    add_context(retailer_id=x_retailer_id)
    return x_retailer_id


def page_params(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
) -> dict:
    return {"page": page, "limit": limit}


def order_filters(
    status: str | None = None,
    payment_status: str | None = Query(default=None, alias="paymentStatus"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    search: str | None = None,
) -> OrderFilters:
    return OrderFilters(
        status=status,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )


def sort_params(
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
) -> dict:
    return {"sort_by": _snake(sort_by), "sort_order": sort_order}


def _snake(name: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")


# ---------------------------------------------------------------------------
# Orders Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=Envelope)
async def create_order(body: CreateOrderRequest, store: Store = Depends(get_store)) -> Envelope:
    order = OrderService(store).place(
        user_id=body.user_id,
        items=[line.model_dump() for line in body.items],
        shipping_address=body.shipping_address,
        billing_address=body.billing_address,
        contact_email=body.contact_email,
        contact_phone=body.contact_phone,
        payment_method=body.payment_method,
        metadata=body.metadata,
    )
    return Envelope(data=order, message="Order created successfully")


@order_router.get("", response_model=Envelope)
async def list_user_orders(
    user_id: str = Query(alias="userId"),
    status: str | None = None,
    paging: dict = Depends(page_params),
    store: Store = Depends(get_store),
) -> Envelope:
    result = OrderService(store).for_user(user_id, status=status, **paging)
    return Envelope(data=result)


@order_router.get("/stats", response_model=Envelope)
async def order_stats(
    user_id: str | None = Query(default=None, alias="userId"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    store: Store = Depends(get_store),
) -> Envelope:
    return Envelope(data=OrderService(store).stats(user_id=user_id, start_date=start_date, end_date=end_date))


@order_router.get("/{order_id}", response_model=Envelope)
async def get_order(
    order_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    store: Store = Depends(get_store),
) -> Envelope:
    return Envelope(data=OrderService(store).get(order_id, user_id=user_id))


@order_router.get("/{order_id}/items/{item_id}/events", response_model=Envelope)
async def item_events(
    order_id: str,
    item_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    store: Store = Depends(get_store),
) -> Envelope:
    return Envelope(data=OrderService(store).item_events(order_id, item_id, user_id=user_id))


@order_router.post("/{order_id}/cancel", response_model=Envelope)
async def cancel_order(order_id: str, body: CancelOrderRequest, store: Store = Depends(get_store)) -> Envelope:
    order = OrderService(store).cancel(order_id, body.user_id, reason=body.reason)
    return Envelope(data=order, message="Order cancelled successfully")


@order_router.put("/{order_id}/payment", response_model=Envelope)
async def update_payment(order_id: str, body: PaymentUpdateRequest, store: Store = Depends(get_store)) -> Envelope:
    order = OrderService(store).update_payment_status(order_id, body.payment_status, payment_data=body.payment_data)
    return Envelope(data=order, message="Payment status updated")


# ---------------------------------------------------------------------------
# Retailer Router
# ---------------------------------------------------------------------------
retailer_router = APIRouter(prefix="/retailer", tags=["retailer"])


@retailer_router.get("/orders", response_model=Envelope)
async def retailer_orders(
    warehouse_id: str | None = Query(default=None, alias="warehouseId"),
    retailer: str = Depends(retailer_id),
    filters: OrderFilters = Depends(order_filters),
    paging: dict = Depends(page_params),
    sorting: dict = Depends(sort_params),
    store: Store = Depends(get_store),
) -> Envelope:
    result = RetailerOrderService(store).orders_for(
        retailer, warehouse_id=warehouse_id, filters=filters, **paging, **sorting
    )
    return Envelope(data=result)


@retailer_router.get("/orders/stats", response_model=Envelope)
async def retailer_stats(
    warehouse_id: str | None = Query(default=None, alias="warehouseId"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    stats = RetailerOrderService(store).stats(
        retailer, warehouse_id=warehouse_id, start_date=start_date, end_date=end_date
    )
    return Envelope(data=stats)


@retailer_router.get("/orders/warehouse/{warehouse_id}", response_model=Envelope)
async def warehouse_orders(
    warehouse_id: str,
    retailer: str = Depends(retailer_id),
    filters: OrderFilters = Depends(order_filters),
    paging: dict = Depends(page_params),
    sorting: dict = Depends(sort_params),
    store: Store = Depends(get_store),
) -> Envelope:
    result = RetailerOrderService(store).orders_for(
        retailer, warehouse_id=warehouse_id, filters=filters, **paging, **sorting
    )
    return Envelope(data=result)


@retailer_router.get("/orders/warehouse/{warehouse_id}/stats", response_model=Envelope)
async def warehouse_stats(
    warehouse_id: str,
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    stats = RetailerOrderService(store).stats(
        retailer, warehouse_id=warehouse_id, start_date=start_date, end_date=end_date
    )
    return Envelope(data=stats)


@retailer_router.get("/orders/warehouse/{warehouse_id}/status/{status}", response_model=Envelope)
async def warehouse_orders_by_status(
    warehouse_id: str,
    status: str,
    retailer: str = Depends(retailer_id),
    paging: dict = Depends(page_params),
    sorting: dict = Depends(sort_params),
    store: Store = Depends(get_store),
) -> Envelope:
    result = RetailerOrderService(store).orders_for(
        retailer, warehouse_id=warehouse_id, filters=OrderFilters(status=status), **paging, **sorting
    )
    return Envelope(data=result)


@retailer_router.get("/orders/{order_id}", response_model=Envelope)
async def retailer_order_detail(
    order_id: str,
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    return Envelope(data=RetailerOrderService(store).order_detail(retailer, order_id))


@retailer_router.put("/orders/{order_id}/status", response_model=Envelope)
async def retailer_update_order_status(
    order_id: str,
    body: UpdateStatusRequest,
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    order = RetailerOrderService(store).update_order_status(
        retailer, order_id, body.status, note=body.note, metadata=body.metadata
    )
    return Envelope(data=order, message="Order status updated successfully")


@retailer_router.put("/orders/{order_id}/items/{item_id}/status", response_model=Envelope)
async def retailer_update_item_status(
    order_id: str,
    item_id: str,
    body: UpdateStatusRequest,
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    item = RetailerOrderService(store).update_item_status(
        retailer, order_id, item_id, body.status, note=body.note, metadata=body.metadata
    )
    return Envelope(data=item, message="Order item status updated successfully")


@retailer_router.post("/warehouses", status_code=201, response_model=Envelope)
async def create_warehouse(
    body: CreateWarehouseRequest,
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    fields = body.model_dump(exclude={"name", "metadata"}, exclude_none=True)
    if body.metadata is not None:
        fields["extras"] = body.metadata
    warehouse = WarehouseDirectory(store).create(retailer, body.name, **fields)
    return Envelope(data=warehouse, message="Warehouse created successfully")


@retailer_router.get("/warehouses", response_model=Envelope)
async def list_warehouses(retailer: str = Depends(retailer_id), store: Store = Depends(get_store)) -> Envelope:
    return Envelope(data=WarehouseDirectory(store).for_retailer(retailer))


@retailer_router.get("/warehouses/{warehouse_id}", response_model=Envelope)
async def get_warehouse(
    warehouse_id: str,
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    return Envelope(data=WarehouseDirectory(store).get(retailer, warehouse_id))


@retailer_router.put("/warehouses/{warehouse_id}", response_model=Envelope)
async def update_warehouse(
    warehouse_id: str,
    body: UpdateWarehouseRequest,
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    changes = body.model_dump(exclude={"metadata"}, exclude_unset=True)
    if "metadata" in body.model_fields_set:
        changes["extras"] = body.metadata
    warehouse = WarehouseDirectory(store).update(retailer, warehouse_id, **changes)
    return Envelope(data=warehouse, message="Warehouse updated successfully")


@retailer_router.post("/schools", status_code=201, response_model=Envelope)
async def link_school(
    body: LinkSchoolRequest,
    retailer: str = Depends(retailer_id),
    store: Store = Depends(get_store),
) -> Envelope:
    link = SchoolDirectory(store).link_retailer(retailer, body.school_id, status=body.status)
    return Envelope(data=SCHOOL_LINK.dump(link), message="School linked successfully")


@retailer_router.get("/dashboard", response_model=Envelope)
async def dashboard(retailer: str = Depends(retailer_id), store: Store = Depends(get_store)) -> Envelope:
    return Envelope(data=DashboardAggregator(store).overview(retailer))
