"""Tests for query criteria helpers and request-level order filters."""

from datetime import UTC, datetime

import pytest

from marketplace.errors import InvalidRequestError
from marketplace.order.order import PAYMENT_STATUS_VALUES, STATUS_VALUES
from marketplace.store.query import OrderFilters, aware, choice, member_of, ordering


class TestOrdering:
    def test_descending_with_tie_break(self):
        assert ordering("created_at", "desc", ["created_at"]) == ["-created_at", "-id"]

    def test_ascending_with_tie_break(self):
        assert ordering("total_amount", "ASC", ["total_amount"]) == ["total_amount", "id"]

    def test_sorting_by_id_needs_no_tie_break(self):
        assert ordering("id", "asc", ["id"]) == ["id"]

    def test_unknown_column(self):
        with pytest.raises(InvalidRequestError) as exc:
            ordering("password", "asc", ["created_at"])
        assert exc.value.details["field"] == "sortBy"

    def test_unknown_direction(self):
        with pytest.raises(InvalidRequestError) as exc:
            ordering("created_at", "sideways", ["created_at"])
        assert exc.value.details["field"] == "sortOrder"


class TestChoice:
    def test_blank_is_no_filter(self):
        assert choice("", STATUS_VALUES, "status") is None
        assert choice(None, STATUS_VALUES, "status") is None

    def test_known_value(self):
        assert choice("shipped", STATUS_VALUES, "status") == "shipped"

    def test_unknown_value_lists_allowed(self):
        with pytest.raises(InvalidRequestError) as exc:
            choice("lost", STATUS_VALUES, "status")
        assert exc.value.details["allowed"] == list(STATUS_VALUES)


def test_member_of_is_sorted_and_deduplicated():
    criteria = member_of("id", ["b", "a", "b"])
    assert criteria.children == [("id__in", ["a", "b"])]


def test_aware_treats_naive_as_utc():
    naive = datetime(2025, 3, 1, 10, 0)
    assert aware(naive) == datetime(2025, 3, 1, 10, 0, tzinfo=UTC)
    assert aware(None) is None


class TestOrderFilters:
    def test_dates_are_normalized(self):
        filters = OrderFilters(start_date=datetime(2025, 1, 1))
        assert filters.start_date.tzinfo is UTC

    def test_start_after_end(self):
        filters = OrderFilters(start_date=datetime(2025, 2, 1), end_date=datetime(2025, 1, 1))
        with pytest.raises(InvalidRequestError):
            filters.validated(STATUS_VALUES, PAYMENT_STATUS_VALUES)

    def test_invalid_payment_status(self):
        with pytest.raises(InvalidRequestError) as exc:
            OrderFilters(payment_status="settled").validated(STATUS_VALUES, PAYMENT_STATUS_VALUES)
        assert exc.value.details["field"] == "paymentStatus"

    def test_as_dict_skips_empty_values(self):
        assert OrderFilters(status="shipped", search="").as_dict() == {"status": "shipped"}
