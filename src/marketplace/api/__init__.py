"""Marketplace API package."""

from marketplace.api.routes import cart_router, coupon_router, order_router, tracking_router

__all__ = ["cart_router", "order_router", "coupon_router", "tracking_router"]
