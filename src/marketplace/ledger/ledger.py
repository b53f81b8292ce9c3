"""Seller ledger: money movements booked against a retailer."""

from enum import Enum

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.order.order import utcnow
from marketplace.store.query import where


class TransactionType(Enum):
    ORDER_REVENUE = "ORDER_REVENUE"
    COMMISSION = "COMMISSION"
    PAYOUT = "PAYOUT"
    REFUND = "REFUND"


@marketplace.aggregate
class SellerLedgerEntry:
    retailer_id: Identifier(required=True)
    order_id: Identifier()
    transaction_type: String(choices=TransactionType, required=True)
    amount: Float(required=True)
    description: String(max_length=255)
    created_at: DateTime(default=utcnow)


def total_sales(store, retailer_id: str) -> float:
    """Sum of the retailer's order-revenue entries, across all of its warehouses."""
    entries = store.find(
        SellerLedgerEntry,
        where(retailer_id=retailer_id, transaction_type=TransactionType.ORDER_REVENUE.value),
        operation="total_sales",
    )
    return round(sum(float(entry.amount or 0) for entry in entries), 2)
