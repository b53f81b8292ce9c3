"""Store handle over the domain's Protean repositories.

Every service receives a ``Store`` in its constructor instead of reaching
for a global domain. All reads and writes go through it, so provider
failures surface uniformly as the marketplace error taxonomy with the
operation name and filters attached.
"""

from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.query import Q

from marketplace.config import settings
from marketplace.errors import (
    InvalidRequestError,
    MarketplaceError,
    NotFoundError,
    UpstreamStoreError,
)
from marketplace.store.query import TIE_BREAK

logger = structlog.get_logger(__name__)


class Store:
    def __init__(self, domain, chunk_size: int | None = None):
        self.domain = domain
        self.chunk_size = chunk_size or settings.store_chunk_size

    # ------------------------------------------------------------------
    # Error translation
    # ------------------------------------------------------------------
    @contextmanager
    def guard(self, operation: str, **context: Any) -> Iterator[None]:
        """Translate framework and provider errors raised inside the block."""
        try:
            yield
        except MarketplaceError:
            raise
        except ObjectNotFoundError as exc:
            raise NotFoundError(str(exc) or "Record not found", operation=operation, **context) from exc
        except ValidationError as exc:
            raise InvalidRequestError(
                "Validation failed",
                operation=operation,
                errors=exc.messages,
                **context,
            ) from exc
        except Exception as exc:
            logger.error(
                "Store operation failed",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
                **context,
            )
            raise UpstreamStoreError(
                f"Store operation '{operation}' failed",
                operation=operation,
                **context,
            ) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _queryset(self, cls, criteria: Q | None = None, order_by: list[str] | None = None):
        qs = self.domain.repository_for(cls)._dao.query
        if criteria:
            qs = qs.filter(criteria)
        if order_by:
            qs = qs.order_by(order_by)
        return qs

    def find(self, cls, criteria: Q | None = None, *, operation: str = "find") -> list:
        """All rows matching ``criteria``, read in id-ordered chunks."""
        rows = []
        offset = 0
        with self.guard(operation, entity=cls.__name__, filters=str(criteria)):
            while True:
                chunk = (
                    self._queryset(cls, criteria, [TIE_BREAK]).offset(offset).limit(self.chunk_size).all().items
                )
                rows.extend(chunk)
                if len(chunk) < self.chunk_size:
                    break
                offset += self.chunk_size
        return rows

    def page(
        self,
        cls,
        criteria: Q | None,
        order_by: list[str],
        offset: int,
        limit: int,
        *,
        operation: str = "page",
    ) -> list:
        with self.guard(operation, entity=cls.__name__, filters=str(criteria), offset=offset, limit=limit):
            return self._queryset(cls, criteria, order_by).offset(offset).limit(limit).all().items

    def count(self, cls, criteria: Q | None = None, *, operation: str = "count") -> int:
        """Exact number of rows matching ``criteria``."""
        with self.guard(operation, entity=cls.__name__, filters=str(criteria)):
            return self._queryset(cls, criteria).limit(1).all().total

    def first(self, cls, criteria: Q, *, operation: str = "first"):
        with self.guard(operation, entity=cls.__name__, filters=str(criteria)):
            items = self._queryset(cls, criteria, [TIE_BREAK]).limit(1).all().items
        return items[0] if items else None

    def get(self, cls, identifier: str, *, operation: str = "get"):
        """Fetch one row by id; ``NotFoundError`` when it does not exist."""
        with self.guard(operation, entity=cls.__name__, id=str(identifier)):
            try:
                return self.domain.repository_for(cls).get(identifier)
            except ObjectNotFoundError as exc:
                raise NotFoundError(
                    f"{cls.__name__} '{identifier}' not found",
                    entity=cls.__name__,
                    id=str(identifier),
                ) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def add(self, obj, *, operation: str = "add"):
        with self.guard(operation, entity=type(obj).__name__, id=str(obj.id)):
            return self.domain.repository_for(type(obj)).add(obj)

    def delete(self, obj, *, operation: str = "delete") -> None:
        with self.guard(operation, entity=type(obj).__name__, id=str(obj.id)):
            self.domain.repository_for(type(obj))._dao.delete(obj)

    def upsert(self, cls, match: dict, values: dict | None = None, *, operation: str = "upsert"):
        """Update the row identified by ``match`` or create it."""
        values = values or {}
        existing = self.first(cls, Q(**match), operation=operation)
        if existing is None:
            with self.guard(operation, entity=cls.__name__, **{k: str(v) for k, v in match.items()}):
                record = cls(**match, **values)
            return self.add(record, operation=operation)

        for key, value in values.items():
            setattr(existing, key, value)
        return self.add(existing, operation=operation)
