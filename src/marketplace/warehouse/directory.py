"""Retailer-facing warehouse lookups and link maintenance."""

import structlog

from marketplace.errors import InvalidRequestError, NotFoundError
from marketplace.order.order import utcnow
from marketplace.store.query import member_of, where
from marketplace.store.serializers import WAREHOUSE, WAREHOUSE_ADDRESS
from marketplace.warehouse.warehouse import RetailerWarehouse, Warehouse, WarehouseAddress

logger = structlog.get_logger(__name__)

_EDITABLE = ("name", "contact_email", "contact_phone", "address", "address_id", "is_verified", "extras")


class WarehouseDirectory:
    def __init__(self, store):
        self.store = store

    def warehouse_ids(self, retailer_id: str) -> set[str]:
        links = self.store.find(RetailerWarehouse, where(retailer_id=retailer_id), operation="retailer_warehouses")
        return {str(link.warehouse_id) for link in links}

    def is_linked(self, retailer_id: str, warehouse_id: str) -> bool:
        link = self.store.first(
            RetailerWarehouse,
            where(retailer_id=retailer_id, warehouse_id=warehouse_id),
            operation="is_linked",
        )
        return link is not None

    def require_linked(self, retailer_id: str, warehouse_id: str) -> None:
        if not self.is_linked(retailer_id, warehouse_id):
            raise NotFoundError(
                "Warehouse not found for this retailer",
                retailer_id=str(retailer_id),
                warehouse_id=str(warehouse_id),
            )

    def link(self, retailer_id: str, warehouse_id: str) -> RetailerWarehouse:
        """Link a retailer to a warehouse; linking twice leaves a single link."""
        return self.store.upsert(
            RetailerWarehouse,
            {"retailer_id": retailer_id, "warehouse_id": warehouse_id},
            operation="link_warehouse",
        )

    def create(self, retailer_id: str, name: str, **fields) -> dict:
        with self.store.guard("create_warehouse", retailer_id=str(retailer_id)):
            warehouse = Warehouse(name=name, **{k: v for k, v in fields.items() if k in _EDITABLE})
        self.store.add(warehouse, operation="create_warehouse")
        self.link(retailer_id, warehouse.id)
        logger.info("Warehouse created", retailer_id=str(retailer_id), warehouse_id=str(warehouse.id))
        return self._present(warehouse)

    def update(self, retailer_id: str, warehouse_id: str, **changes) -> dict:
        self.require_linked(retailer_id, warehouse_id)
        unknown = sorted(set(changes) - set(_EDITABLE))
        if unknown:
            raise InvalidRequestError("Unknown warehouse fields", fields=unknown)

        warehouse = self.store.get(Warehouse, warehouse_id, operation="update_warehouse")
        with self.store.guard("update_warehouse", warehouse_id=str(warehouse_id)):
            for key, value in changes.items():
                setattr(warehouse, key, value)
            warehouse.updated_at = utcnow()
        self.store.add(warehouse, operation="update_warehouse")
        return self._present(warehouse)

    def get(self, retailer_id: str, warehouse_id: str) -> dict:
        self.require_linked(retailer_id, warehouse_id)
        return self._present(self.store.get(Warehouse, warehouse_id, operation="get_warehouse"))

    def for_retailer(self, retailer_id: str) -> list[dict]:
        ids = self.warehouse_ids(retailer_id)
        if not ids:
            return []
        warehouses = self.store.find(Warehouse, member_of("id", ids), operation="retailer_warehouses.rows")
        return self._present_many(warehouses)

    def _addresses(self, warehouses) -> dict[str, dict]:
        address_ids = {str(w.address_id) for w in warehouses if w.address_id}
        if not address_ids:
            return {}
        rows = self.store.find(WarehouseAddress, member_of("id", address_ids), operation="warehouse_addresses")
        return {str(row.id): WAREHOUSE_ADDRESS.dump(row) for row in rows}

    def _present_many(self, warehouses) -> list[dict]:
        addresses = self._addresses(warehouses)
        presented = []
        for warehouse in warehouses:
            data = WAREHOUSE.dump(warehouse)
            if warehouse.address_id and str(warehouse.address_id) in addresses:
                data["address"] = addresses[str(warehouse.address_id)]
            presented.append(data)
        return presented

    def _present(self, warehouse) -> dict:
        return self._present_many([warehouse])[0]
