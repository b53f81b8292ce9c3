"""Batch enrichment of order items with variant options and school names.

Each lookup is one query over the distinct ids of the whole batch, so the
number of round trips is fixed regardless of how many items come in:

    variants -> option values -> attributes      (variant chain)
    product-school links -> schools              (school chain)

The two chains run concurrently. Enrichment is presentation only: a
failed lookup is logged and treated as an empty map, and items come back
with ``variant`` / ``schoolName`` set to ``None`` instead of an error.
"""

import structlog

from marketplace.catalogue.product import ProductAttribute, ProductOptionValue, ProductVariant
from marketplace.catalogue.school import ProductSchool, School
from marketplace.errors import MarketplaceError
from marketplace.shared.concurrency import TaskFailed, fan_out
from marketplace.store.query import member_of
from marketplace.store.serializers import ATTRIBUTE, OPTION_VALUE, VARIANT

logger = structlog.get_logger(__name__)


def _distinct(values) -> list[str]:
    return sorted({str(value) for value in values if value})


class EnrichmentPipeline:
    def __init__(self, store):
        self.store = store

    def _lookup(self, name: str, cls, field: str, ids) -> list:
        if not ids:
            return []
        try:
            return self.store.find(cls, member_of(field, ids), operation=f"enrich.{name}")
        except MarketplaceError as exc:
            logger.warning("Enrichment lookup failed", lookup=name, error=exc.message, count=len(ids))
            return []

    # ------------------------------------------------------------------
    # Variant chain
    # ------------------------------------------------------------------
    def variant_map(self, items: list[dict]) -> dict[str, dict]:
        variants = self._lookup("variants", ProductVariant, "id", _distinct(i.get("variantId") for i in items))
        if not variants:
            return {}

        option_value_ids = _distinct(value_id for v in variants for value_id in v.option_value_ids())
        option_values = self._lookup("option_values", ProductOptionValue, "id", option_value_ids)

        attributes = self._lookup(
            "attributes", ProductAttribute, "id", _distinct(ov.attribute_id for ov in option_values)
        )
        attribute_map = {str(a.id): ATTRIBUTE.dump(a) for a in attributes}

        option_map = {}
        for ov in option_values:
            option = OPTION_VALUE.dump(ov)
            option["attribute"] = attribute_map.get(str(ov.attribute_id))
            option_map[str(ov.id)] = option

        variant_map = {}
        for variant in variants:
            data = VARIANT.dump(variant)
            data["options"] = [option_map[vid] for vid in variant.option_value_ids() if vid in option_map]
            variant_map[str(variant.id)] = data
        return variant_map

    # ------------------------------------------------------------------
    # School chain
    # ------------------------------------------------------------------
    def school_map(self, items: list[dict]) -> dict[str, str]:
        product_ids = _distinct(i.get("productId") for i in items)
        links = self._lookup("product_schools", ProductSchool, "product_id", product_ids)
        if not links:
            return {}

        schools = self._lookup("schools", School, "id", _distinct(link.school_id for link in links))
        names = {str(school.id): school.name for school in schools if school.name}

        school_map = {}
        # A product linked to several schools reports the last link read
        for link in links:
            name = names.get(str(link.school_id))
            if name:
                school_map[str(link.product_id)] = name
        return school_map

    # ------------------------------------------------------------------
    def enrich(self, items: list[dict]) -> list[dict]:
        """Return copies of ``items`` with ``variant`` and ``schoolName`` attached."""
        if not items:
            return []

        results = fan_out(
            self.store.domain,
            {
                "variants": lambda: self.variant_map(items),
                "schools": lambda: self.school_map(items),
            },
        )
        variants = {} if isinstance(results["variants"], TaskFailed) else results["variants"]
        schools = {} if isinstance(results["schools"], TaskFailed) else results["schools"]

        enriched = []
        for item in items:
            variant_id = item.get("variantId")
            product_id = item.get("productId")
            enriched.append(
                {
                    **item,
                    "variant": variants.get(str(variant_id)) if variant_id else None,
                    "schoolName": schools.get(str(product_id)) if product_id else None,
                }
            )
        return enriched

    def enrich_orders(self, orders: list[dict]) -> list[dict]:
        """Enrich the ``items`` of several orders in one batch."""
        all_items = [item for order in orders for item in order.get("items", [])]
        enriched = iter(self.enrich(all_items))
        return [{**order, "items": [next(enriched) for _ in order.get("items", [])]} for order in orders]
