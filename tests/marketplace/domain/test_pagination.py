"""Tests for pagination metadata."""

import pytest

from marketplace.errors import InvalidRequestError
from marketplace.shared.pagination import Paginator, empty_page, page_info


class TestPageInfo:
    def test_middle_page(self):
        assert page_info(2, 10, 25) == {
            "page": 2,
            "limit": 10,
            "total": 25,
            "totalPages": 3,
            "hasNext": True,
            "hasPrev": True,
        }

    def test_last_page(self):
        info = page_info(3, 10, 25)
        assert info["hasNext"] is False
        assert info["hasPrev"] is True

    def test_exact_multiple(self):
        assert page_info(2, 5, 10)["totalPages"] == 2

    def test_no_rows(self):
        info = page_info(1, 10, 0)
        assert info["totalPages"] == 0
        assert info["hasNext"] is False
        assert info["hasPrev"] is False

    def test_empty_page(self):
        assert empty_page(1, 10)["rows"] == []


class TestValidation:
    def test_accepts_bounds(self):
        paginator = Paginator(store=None)
        assert paginator.validate(1, 1) == (1, 1)
        assert paginator.validate("2", "100") == (2, 100)

    @pytest.mark.parametrize("page, limit", [(0, 10), (1, 0), (1, 101), ("x", 10)])
    def test_rejects(self, page, limit):
        with pytest.raises(InvalidRequestError):
            Paginator(store=None).validate(page, limit)
