"""Application tests for batch item enrichment."""

import pytest

from marketplace.catalogue.school import ProductSchool
from marketplace.errors import UpstreamStoreError
from marketplace.order.enrichment import EnrichmentPipeline


@pytest.fixture()
def catalogue(seed):
    seed.attribute("attr-size", "Size", position=1)
    seed.attribute("attr-color", "Color", position=2)
    seed.option("opt-m", "attr-size", "M")
    seed.option("opt-navy", "attr-color", "Navy")
    seed.product("prod-1", title="School Shirt")
    seed.product("prod-2", title="School Tie")
    seed.variant("var-1", "prod-1", price=499.0, stock=12, options=("opt-m", "opt-navy"))
    seed.variant("var-2", "prod-2", price=150.0, stock=3, options=("opt-navy",))
    seed.school("sch-1", "Delhi Public School")
    seed.school("sch-2", "Kendriya Vidyalaya")
    seed.product_school("prod-1", "sch-1")
    return seed


def _items():
    return [
        {"id": "item-1", "productId": "prod-1", "variantId": "var-1"},
        {"id": "item-2", "productId": "prod-2", "variantId": "var-2"},
        {"id": "item-3", "productId": "prod-1", "variantId": None},
        {"id": "item-4", "productId": "prod-9", "variantId": "var-missing"},
    ]


class TestEnrich:
    def test_attaches_variant_options_in_slot_order(self, store, catalogue):
        enriched = EnrichmentPipeline(store).enrich(_items())

        variant = enriched[0]["variant"]
        assert variant["price"] == 499.0
        assert variant["stock"] == 12
        assert [(o["attribute"]["name"], o["value"]) for o in variant["options"]] == [("Size", "M"), ("Color", "Navy")]

    def test_attaches_school_names(self, store, catalogue):
        enriched = EnrichmentPipeline(store).enrich(_items())
        assert [item["schoolName"] for item in enriched] == ["Delhi Public School", None, "Delhi Public School", None]

    def test_missing_references_become_none(self, store, catalogue):
        enriched = EnrichmentPipeline(store).enrich(_items())
        assert enriched[2]["variant"] is None
        assert enriched[3]["variant"] is None

    def test_input_is_not_mutated(self, store, catalogue):
        items = _items()
        EnrichmentPipeline(store).enrich(items)
        assert "variant" not in items[0]

    def test_idempotent(self, store, catalogue):
        pipeline = EnrichmentPipeline(store)
        once = pipeline.enrich(_items())
        assert pipeline.enrich(once) == once

    def test_empty(self, store):
        assert EnrichmentPipeline(store).enrich([]) == []

    def test_enrich_orders_keeps_items_with_their_order(self, store, catalogue):
        orders = [{"id": "ord-1", "items": _items()[:2]}, {"id": "ord-2", "items": []}, {"id": "ord-3", "items": _items()[2:]}]
        enriched = EnrichmentPipeline(store).enrich_orders(orders)

        assert [o["id"] for o in enriched] == ["ord-1", "ord-2", "ord-3"]
        assert [i["id"] for i in enriched[2]["items"]] == ["item-3", "item-4"]
        assert enriched[0]["items"][1]["variant"]["price"] == 150.0


class TestEnrichmentFailures:
    def test_school_lookup_failure_degrades_to_none(self, store, catalogue, monkeypatch):
        original = store.find

        def find(cls, criteria=None, *, operation="find"):
            if cls is ProductSchool:
                raise UpstreamStoreError("Store operation failed", operation=operation)
            return original(cls, criteria, operation=operation)

        monkeypatch.setattr(store, "find", find)
        enriched = EnrichmentPipeline(store).enrich(_items())

        assert [item["schoolName"] for item in enriched] == [None, None, None, None]
        assert enriched[0]["variant"]["price"] == 499.0

    def test_unexpected_failure_in_a_chain_degrades_to_empty(self, store, catalogue, monkeypatch):
        pipeline = EnrichmentPipeline(store)
        monkeypatch.setattr(pipeline, "variant_map", lambda items: 1 / 0)

        enriched = pipeline.enrich(_items())
        assert all(item["variant"] is None for item in enriched)
        assert enriched[0]["schoolName"] == "Delhi Public School"
