"""Stock reservation: decrement variant stock for a batch of order lines.

Each line is reserved in order and persisted on its own, so a successful line
is durable before the next one is attempted. When a line fails, every line
already reserved by the same call is released again (in reverse order) and
the failing line's own error is surfaced.

The check-and-decrement for a product runs under a per-product lock held in a
``ProductLocks`` registry. Within one process this makes "decrement only if
stock >= quantity" atomic. Processes do not share locks; a multi-process
deployment needs a conditional update in the database instead.

Handlers run while the lock is held; slow side effects they defer run after
it is released (see ``shoestore.utils.deferred``).

Compensation is best-effort: a crash between a decrement and its release
leaves stock understated until someone restocks the variant.
"""

import threading
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from shoestore.catalogue.product.product import Product
from shoestore.errors import ReservationFailed, VariantNotFound
from shoestore.utils.deferred import deferring

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockRequest:
    product_id: str
    size: str
    color: str
    quantity: int


@dataclass(frozen=True)
class ReservedLine:
    """One successful decrement. Releasing it puts back exactly ``quantity``."""

    product_id: str
    variant_id: str
    sku: str
    size: str
    color: str
    quantity: int
    remaining: int


class ProductLocks:
    """Hands out one lock per product id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def for_product(self, product_id) -> threading.Lock:
        key = str(product_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


_shared_locks = ProductLocks()


class StockReservation:
    """Reserve and release stock across several products."""

    def __init__(self, locks: ProductLocks | None = None) -> None:
        self.locks = locks or _shared_locks

    @property
    def repo(self):
        return current_domain.repository_for(Product)

    def _load(self, product_id, size, color) -> Product:
        try:
            return self.repo.get(product_id)
        except ObjectNotFoundError as exc:
            raise VariantNotFound(
                f"Product {product_id} does not exist",
                product_id=str(product_id),
                size=str(size),
                color=color,
            ) from exc

    def reserve_one(self, request: StockRequest) -> ReservedLine:
        with deferring(), self.locks.for_product(request.product_id):
            product = self._load(request.product_id, request.size, request.color)
            variant = product.reserve_stock(request.size, request.color, request.quantity)
            self.repo.add(product)

        return ReservedLine(
            product_id=str(product.id),
            variant_id=str(variant.id),
            sku=variant.sku,
            size=variant.size,
            color=variant.color,
            quantity=request.quantity,
            remaining=variant.stock,
        )

    def release_one(self, line: ReservedLine) -> int:
        with self.locks.for_product(line.product_id):
            product = self._load(line.product_id, line.size, line.color)
            variant = product.release_stock(line.size, line.color, line.quantity)
            self.repo.add(product)
        return variant.stock

    def reserve(self, requests: list[StockRequest]) -> list[ReservedLine]:
        """Reserve every request or none of them.

        Low-stock alerts raised along the way go out once the whole batch is
        reserved, and are dropped if it is rolled back.
        """
        reserved: list[ReservedLine] = []
        with deferring():
            for position, request in enumerate(requests):
                try:
                    reserved.append(self.reserve_one(request))
                except Exception as exc:
                    logger.info(
                        "Stock reservation failed, rolling back",
                        product_id=str(request.product_id),
                        size=request.size,
                        color=request.color,
                        position=position,
                        reason=type(exc).__name__,
                        already_reserved=len(reserved),
                    )
                    self._compensate(reserved, cause=exc)
                    raise

        logger.info("Stock reserved", lines=len(reserved))
        return reserved

    def release(self, lines: list[ReservedLine]) -> None:
        """Put back every line; raise ReservationFailed if any line could not be restored."""
        failures = []
        for line in reversed(lines):
            try:
                self.release_one(line)
            except Exception as exc:
                logger.error(
                    "Failed to release reserved stock",
                    product_id=line.product_id,
                    sku=line.sku,
                    quantity=line.quantity,
                    error=str(exc),
                )
                failures.append(line.sku)

        if failures:
            raise ReservationFailed(
                "Stock could not be fully restored",
                unreleased_skus=failures,
            )

    def _compensate(self, reserved: list[ReservedLine], cause: Exception) -> None:
        if not reserved:
            return
        try:
            self.release(reserved)
        except ReservationFailed as failure:
            raise ReservationFailed(
                "Order could not be placed and stock could not be fully restored",
                cause=type(cause).__name__,
                **failure.details,
            ) from cause
