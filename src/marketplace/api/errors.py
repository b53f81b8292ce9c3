"""Render marketplace errors as ``{"success": false, "error": {...}}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from marketplace.errors import MarketplaceError

logger = structlog.get_logger(__name__)


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("Request failed", path=request.url.path, kind=exc.kind, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": jsonable_encoder(exc.to_dict())},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Protean's own handlers plus the marketplace taxonomy."""
    register_exception_handlers(app)
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
