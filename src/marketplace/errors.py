"""Error taxonomy surfaced by the marketplace services.

Every failure that reaches a caller is one of four kinds. The API layer
renders them as ``{"success": false, "error": {kind, message, details}}``
with the mapped HTTP status.
"""

from typing import Any


class MarketplaceError(Exception):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class NotFoundError(MarketplaceError):
    """Order, item or warehouse is absent (or not visible to the caller)."""

    kind = "not_found"
    status_code = 404


class InvalidRequestError(MarketplaceError):
    """Unrecognized status value, missing required field or malformed filter."""

    kind = "validation"
    status_code = 400


class ConflictError(MarketplaceError):
    """A unique constraint would be violated, e.g. a duplicate retailer-school link."""

    kind = "conflict"
    status_code = 409


class UpstreamStoreError(MarketplaceError):
    """The datastore call itself failed."""

    kind = "upstream_store_failure"
    status_code = 502
