"""Marketplace FastAPI application.

Web server that processes commands synchronously via HTTP. Every request is
wrapped in the marketplace domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay and, when "production", disables
# the fake carrier configuration endpoints.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from marketplace.domain import marketplace  # noqa: E402

marketplace.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace API",
    description="Multi-vendor storefront — checkout pricing and shipment tracking",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context for each request."""
    with marketplace.domain_context():
        response = await call_next(request)
    return response


register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import cart_router, coupon_router, order_router, tracking_router  # noqa: E402

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(coupon_router)
app.include_router(tracking_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "marketplace": {"name": marketplace.name},
            },
        }
    )
