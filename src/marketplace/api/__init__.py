"""Marketplace domain API package."""

from marketplace.api.errors import register_marketplace_error_handlers
from marketplace.api.routes import cart_router, order_router

__all__ = ["cart_router", "order_router", "register_marketplace_error_handlers"]
