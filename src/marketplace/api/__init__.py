from marketplace.api.errors import register_error_handlers
from marketplace.api.routes import order_router, retailer_router

__all__ = ["order_router", "retailer_router", "register_error_handlers"]
