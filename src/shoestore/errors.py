"""Error taxonomy and the HTTP envelope it renders to.

Every failure surfaced to a caller carries a machine-readable ``kind``, a
human-readable ``message`` and optional structured ``details`` (the affected
item, the available quantity, whether a retry makes sense). Protean's own
``ValidationError`` and ``ObjectNotFoundError`` are rendered with the same
envelope so clients only ever parse one shape.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    """Base class for every business error the store raises on purpose."""

    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": self.details}


# ---------------------------------------------------------------------------
# Order placement
# ---------------------------------------------------------------------------
class EmptyOrder(StoreError):
    pass


class ProductUnavailable(StoreError):
    pass


class VariantUnavailable(StoreError):
    pass


class InvalidCoupon(StoreError):
    pass


# ---------------------------------------------------------------------------
# Stock reservation
# ---------------------------------------------------------------------------
class VariantNotFound(StoreError):
    pass


class InactiveVariant(StoreError):
    pass


class InsufficientStock(StoreError):
    def __init__(self, message: str, available: int, requested: int, **details):
        super().__init__(message, available=available, requested=requested, **details)
        self.available = available
        self.requested = requested


class ReservationFailed(StoreError):
    pass


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class GatewayRejected(StoreError):
    """The gateway gave a definitive refusal (declined card, invalid request)."""

    status_code = 402

    def __init__(self, message: str, code: str | None = None, retryable: bool = True, **details):
        super().__init__(message, code=code, retryable=retryable, **details)
        self.code = code
        self.retryable = retryable


class GatewayTimeout(StoreError):
    """The gateway could not be reached in time; the outcome is unknown."""

    status_code = 504

    def __init__(self, message: str = "Payment provider did not respond in time", **details):
        super().__init__(message, retryable=True, **details)


class InvalidWebhookSignature(StoreError):
    pass


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------
class NotFound(StoreError):
    status_code = 404


class Forbidden(StoreError):
    status_code = 403


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------
def _envelope(status_code: int, kind: str, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"kind": kind, "message": message, "details": details or {}}},
    )


async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    if isinstance(exc, InvalidWebhookSignature):
        logger.warning("Rejected webhook with invalid signature", path=request.url.path)
    return _envelope(exc.status_code, exc.kind, exc.message, exc.details)


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    messages = exc.messages if isinstance(exc.messages, dict) else {"_entity": [str(exc.messages)]}
    first = next(iter(messages.values()), ["Invalid request"])
    message = first[0] if isinstance(first, list) and first else str(first)
    return _envelope(400, "ValidationError", message, {"fields": messages})


async def _not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _envelope(404, "NotFound", "Resource not found")


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error while processing request",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    return _envelope(500, "InternalError", "An unexpected error occurred")


def register_error_handlers(app: FastAPI) -> None:
    """Install the store's error envelope on a FastAPI application."""
    app.add_exception_handler(StoreError, _store_error_handler)
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, _not_found_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
