"""Shared BDD step definitions for the marketplace scenarios."""

from pytest_bdd import given, parsers


# ---------------------------------------------------------------------------
# Given steps: warehouses and the orders they fulfil
# ---------------------------------------------------------------------------
@given(parsers.cfparse('retailer "{retailer_id}" owns warehouse "{warehouse_id}"'))
def _(seed, retailer_id, warehouse_id):
    seed.warehouse(warehouse_id, retailer_id=retailer_id)


@given(parsers.cfparse('warehouse "{warehouse_id}" fulfils order "{order_id}" with an item in status "{status}"'))
def _(seed, warehouse_id, order_id, status):
    seed.order(order_id)
    seed.item(f"{order_id}-item", order_id, status=status, warehouse_id=warehouse_id, unit_price=250.0)


@given(parsers.cfparse('order "{order_id}" is assigned to warehouse "{warehouse_id}" with untagged items'))
def _(seed, order_id, warehouse_id):
    seed.order(order_id, warehouse_id=warehouse_id)
    seed.item(f"{order_id}-item-a", order_id)
    seed.item(f"{order_id}-item-b", order_id)
