"""Shoe store FastAPI application.

Processes commands synchronously per HTTP request inside the shoestore
domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay (test, production).
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shoestore.domain import load_elements, shoestore
from shoestore.errors import register_error_handlers
from shoestore.utils.logging import add_context, clear_context, configure_logging, get_logger

configure_logging()
load_elements()
shoestore.init()

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Shoe Store API",
    description="Catalogue, cart, orders, payments and notifications for the shoe store",
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
    """Push the shoestore domain context and a request-scoped log context."""
    clear_context()
    add_context(request_id=request.headers.get("X-Request-Id") or uuid4().hex[:16])
    with shoestore.domain_context():
        response = await call_next(request)
    return response


register_error_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from shoestore.catalogue.api.routes import product_router, review_router  # noqa: E402
from shoestore.identity.api.routes import router as customer_router  # noqa: E402
from shoestore.notifications.api.routes import notification_router  # noqa: E402
from shoestore.ordering.api.routes import cart_router, coupon_router, order_router, wishlist_router  # noqa: E402
from shoestore.payments.api.routes import payment_router  # noqa: E402

app.include_router(customer_router)
app.include_router(product_router)
app.include_router(review_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(coupon_router)
app.include_router(wishlist_router)
app.include_router(payment_router)
app.include_router(notification_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": shoestore.name})
