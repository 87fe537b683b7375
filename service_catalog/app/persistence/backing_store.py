"""
Backing store adapter for Catalog Service.

Wraps the durable product repository with a simulated network delay and
per-route read accounting. Errors from the repository are not retried.
"""

from typing import Optional, Protocol

from shared.latency import DelayStrategy, fixed_delay
from shared.logging import get_logger
from shared.metrics import MetricsRecorder
from ..models import Product

DEFAULT_DB_LATENCY_MS = 50


class ProductRepository(Protocol):
    """Get-by-key interface of the durable store client."""

    async def fetch_product(self, sku: str) -> Optional[Product]:
        ...


class BackingStore:
    """Slow, authoritative product lookups."""

    def __init__(
        self,
        repository: ProductRepository,
        metrics: MetricsRecorder,
        delay: Optional[DelayStrategy] = None,
    ):
        self.repository = repository
        self.metrics = metrics
        self.delay = delay or fixed_delay(DEFAULT_DB_LATENCY_MS)
        self.logger = get_logger("catalog.persistence.backing_store")

    async def get(self, route: str, key: str) -> Optional[Product]:
        """Fetch a product; ``None`` when the key does not exist."""
        await self.delay()
        try:
            product = await self.repository.fetch_product(key)
        finally:
            self.metrics.inc_backing_read(route)

        if product is None:
            self.logger.debug("Backing store miss", key=key, route=route)
        return product
