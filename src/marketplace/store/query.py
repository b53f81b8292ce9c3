"""Composable query criteria for store reads.

Filters are built as Protean ``Q`` objects: values travel as lookup
parameters and are never spliced into predicate text. ``OrderFilters``
turns request-level filters into a single criteria object, validating
the values it accepts along the way.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Iterable

from protean.utils.query import Q

from marketplace.errors import InvalidRequestError

TIE_BREAK = "id"


def where(**lookups) -> Q:
    """Conjunction of lookups, skipping those whose value is ``None``."""
    return Q(**{key: value for key, value in lookups.items() if value is not None})


def all_of(*parts: Q | None) -> Q:
    criteria = Q()
    for part in parts:
        if part:
            criteria &= part
    return criteria


def any_of(*parts: Q | None) -> Q:
    present = [part for part in parts if part]
    if not present:
        return Q()
    criteria = present[0]
    for part in present[1:]:
        criteria |= part
    return criteria


def contains_any(term: str | None, fields: Iterable[str]) -> Q:
    """Case-insensitive substring match of ``term`` against any of ``fields``."""
    if not term or not term.strip():
        return Q()
    needle = term.strip()
    return any_of(*(Q(**{f"{field}__icontains": needle}) for field in fields))


def member_of(field: str, values: Iterable) -> Q:
    return Q(**{f"{field}__in": sorted({str(value) for value in values})})


def ordering(sort_by: str, sort_order: str, allowed: Iterable[str]) -> list[str]:
    """Order clause for ``sort_by`` with a deterministic ``id`` tie-break.

    The tie-break runs in the same direction as the primary key.
    """
    allowed = tuple(allowed)
    if sort_by not in allowed:
        raise InvalidRequestError(
            f"Cannot sort by '{sort_by}'",
            field="sortBy",
            allowed=list(allowed),
        )

    direction = (sort_order or "desc").lower()
    if direction not in ("asc", "desc"):
        raise InvalidRequestError(
            f"Invalid sort order '{sort_order}'",
            field="sortOrder",
            allowed=["asc", "desc"],
        )

    prefix = "-" if direction == "desc" else ""
    clause = [f"{prefix}{sort_by}"]
    if sort_by != TIE_BREAK:
        clause.append(f"{prefix}{TIE_BREAK}")
    return clause


def aware(moment: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so they compare with stored values."""
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def choice(value: str | None, allowed: Iterable[str], field: str) -> str | None:
    """Validate an optional enum-like filter value."""
    if value is None or value == "":
        return None
    allowed = tuple(allowed)
    if value not in allowed:
        raise InvalidRequestError(
            f"Invalid {field} '{value}'. Must be one of: {', '.join(allowed)}",
            field=field,
            allowed=list(allowed),
        )
    return value


@dataclass(frozen=True)
class OrderFilters:
    """Order-level filters shared by the search and warehouse listings.

    ``status`` is validated but not applied here: callers decide whether it
    targets the order row or the attributed items.
    """

    status: str | None = None
    payment_status: str | None = None
    user_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None

    SEARCH_FIELDS = ("order_number", "contact_email", "contact_phone")

    def __post_init__(self):
        object.__setattr__(self, "start_date", aware(self.start_date))
        object.__setattr__(self, "end_date", aware(self.end_date))

    def validated(self, statuses: Iterable[str], payment_statuses: Iterable[str]) -> "OrderFilters":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise InvalidRequestError(
                "startDate must not be after endDate",
                field="startDate",
            )
        choice(self.status, statuses, "status")
        choice(self.payment_status, payment_statuses, "paymentStatus")
        return self

    def order_criteria(self, include_status: bool = True) -> Q:
        return all_of(
            where(
                status=self.status if include_status else None,
                payment_status=self.payment_status,
                user_id=self.user_id,
                created_at__gte=self.start_date,
                created_at__lte=self.end_date,
            ),
            contains_any(self.search, self.SEARCH_FIELDS),
        )

    def as_dict(self) -> dict:
        return {key: str(value) for key, value in self.__dict__.items() if value not in (None, "")}
