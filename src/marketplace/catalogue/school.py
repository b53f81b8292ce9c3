"""Schools, and the product and retailer links to them."""

from collections import Counter
from enum import Enum

import structlog
from protean.fields import DateTime, Identifier, String

from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.order.order import utcnow
from marketplace.store.query import where

logger = structlog.get_logger(__name__)


class RetailerSchoolStatus(Enum):
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


@marketplace.aggregate
class School:
    name: String(required=True, max_length=255)
    city: String(max_length=100)
    code: String(max_length=50)


@marketplace.aggregate
class ProductSchool:
    product_id: Identifier(required=True)
    school_id: Identifier(required=True)


@marketplace.aggregate
class RetailerSchool:
    retailer_id: Identifier(required=True)
    school_id: Identifier(required=True)
    status: String(choices=RetailerSchoolStatus, default=RetailerSchoolStatus.PENDING.value)
    created_at: DateTime(default=utcnow)


class SchoolDirectory:
    def __init__(self, store):
        self.store = store

    def link_retailer(self, retailer_id: str, school_id: str, status: str = RetailerSchoolStatus.PENDING.value):
        """Associate a retailer with a school; a second link to the same school conflicts."""
        self.store.get(School, school_id, operation="link_school.school")

        existing = self.store.first(
            RetailerSchool,
            where(retailer_id=retailer_id, school_id=school_id),
            operation="link_school.lookup",
        )
        if existing is not None:
            raise ConflictError(
                "Retailer is already linked to this school",
                retailer_id=str(retailer_id),
                school_id=str(school_id),
            )

        with self.store.guard("link_school.create", retailer_id=str(retailer_id), school_id=str(school_id)):
            link = RetailerSchool(retailer_id=retailer_id, school_id=school_id, status=status)
        self.store.add(link, operation="link_school.create")
        logger.info("Retailer linked to school", retailer_id=str(retailer_id), school_id=str(school_id))
        return link

    def counts_by_status(self, retailer_id: str) -> dict:
        links = self.store.find(RetailerSchool, where(retailer_id=retailer_id), operation="school_counts")
        counts = Counter(link.status for link in links)
        return {
            RetailerSchoolStatus.APPROVED.value: counts.get(RetailerSchoolStatus.APPROVED.value, 0),
            RetailerSchoolStatus.PENDING.value: counts.get(RetailerSchoolStatus.PENDING.value, 0),
        }
