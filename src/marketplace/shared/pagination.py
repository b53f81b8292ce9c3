"""Offset pagination with an independent exact count.

``total`` comes from its own count query over the same criteria, never
from the length of the fetched page, so it is identical on every page of
a fixed filter.
"""

import math

from protean.utils.query import Q

from marketplace.config import settings
from marketplace.errors import InvalidRequestError
from marketplace.store.query import ordering


def page_info(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def empty_page(page: int, limit: int) -> dict:
    return {"rows": [], "pagination": page_info(page, limit, 0)}


class Paginator:
    def __init__(self, store, max_limit: int | None = None):
        self.store = store
        self.max_limit = max_limit or settings.max_page_limit

    def validate(self, page, limit) -> tuple[int, int]:
        try:
            page, limit = int(page), int(limit)
        except (TypeError, ValueError) as exc:
            raise InvalidRequestError("page and limit must be integers", page=page, limit=limit) from exc
        if page < 1:
            raise InvalidRequestError("page must be >= 1", field="page", page=page)
        if not 1 <= limit <= self.max_limit:
            raise InvalidRequestError(
                f"limit must be between 1 and {self.max_limit}",
                field="limit",
                limit=limit,
            )
        return page, limit

    def paginate(
        self,
        cls,
        criteria: Q | None,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        sortable=("created_at",),
        operation: str = "paginate",
    ) -> dict:
        """Fetch one page of ``cls`` rows plus pagination metadata."""
        page, limit = self.validate(page, limit if limit is not None else settings.default_page_limit)
        order_by = ordering(sort_by, sort_order, sortable)

        total = self.store.count(cls, criteria, operation=f"{operation}.count")
        rows = self.store.page(
            cls,
            criteria,
            order_by,
            offset=(page - 1) * limit,
            limit=limit,
            operation=f"{operation}.rows",
        )
        return {"rows": rows, "pagination": page_info(page, limit, total)}
