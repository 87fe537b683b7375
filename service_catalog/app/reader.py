"""
Cache-aside read path for Catalog Service.

A read checks the cache first, falls back to the backing store on a miss and
populates the cache with a fixed TTL. There is no locking and no
single-flight: concurrent misses on one key may each read the store and each
write the cache, the last writer wins. Not-found results are never cached.

Cancellation lands at the next await. A read inside a Redis round trip stops
only if the client honours the cancel for the command in flight.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from shared.errors import CatalogException, NotFoundError, RequestCancelledError, ValidationError
from shared.logging import get_logger
from shared.metrics import EndTimer, MetricsRecorder
from .cache.redis_cache import RedisCache
from .models import Product, ReadResult
from .persistence.backing_store import BackingStore

CACHE_ROUTE = "/cache/:sku"
DEFAULT_CACHE_TTL_SECONDS = 30

STATUS_OK = 200
STATUS_CANCELLED = 499

T = TypeVar("T")


def metric_status(exc: BaseException) -> int:
    """Status label recorded for a failed request."""
    if isinstance(exc, (RequestCancelledError, asyncio.CancelledError)):
        return STATUS_CANCELLED
    if isinstance(exc, CatalogException):
        return exc.status_code
    return 500


class _StoreTimeout(Exception):
    """Carries a timeout raised by a store client out of ``wait_for``."""

    def __init__(self, error: BaseException):
        super().__init__(str(error))
        self.error = error


async def _surface_store_timeouts(call: Awaitable[T]) -> T:
    try:
        return await call
    except asyncio.TimeoutError as e:
        raise _StoreTimeout(e) from None


async def finish_observed(
    end: EndTimer,
    call: Awaitable[T],
    *,
    key: str,
    timeout: Optional[float] = None,
) -> T:
    """Await ``call`` under an optional deadline and finish ``end`` once.

    Only expiry of ``timeout`` becomes ``RequestCancelledError`` (499). A
    timeout raised by a store client is a failure like any other (500).
    """
    try:
        if timeout is None:
            result = await call
        else:
            try:
                result = await asyncio.wait_for(_surface_store_timeouts(call), timeout)
            except _StoreTimeout as inner:
                raise inner.error
            except asyncio.TimeoutError:
                raise RequestCancelledError(
                    f"Read of {key!r} exceeded {timeout}s deadline",
                    {"key": key, "timeout_seconds": timeout},
                ) from None
    except (Exception, asyncio.CancelledError) as exc:
        end(metric_status(exc))
        raise

    end(STATUS_OK)
    return result


class CacheAsideReader:
    """Check cache, fall back to the store, populate the cache."""

    def __init__(
        self,
        cache: RedisCache,
        backing_store: BackingStore,
        metrics: MetricsRecorder,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        self.cache = cache
        self.backing_store = backing_store
        self.metrics = metrics
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("catalog.reader")

    async def read(
        self,
        route: str,
        key: str,
        *,
        method: str = "GET",
        timeout: Optional[float] = None,
    ) -> ReadResult:
        """Read one product through the cache.

        Every call finishes exactly one duration observation, tagged with the
        outcome status, whether it succeeds or raises.
        """
        end = self.metrics.observe(method, route)

        if not key:
            end(ValidationError.status_code)
            raise ValidationError("Key must be non-empty")

        try:
            return await finish_observed(end, self._read_through(route, key), key=key, timeout=timeout)
        except RequestCancelledError:
            self.logger.warning("Read deadline exceeded", key=key, route=route, timeout=timeout)
            raise

    async def _read_through(self, route: str, key: str) -> ReadResult:
        payload = await self.cache.get(key)
        if payload is not None:
            try:
                product = Product.from_cache(payload)
            except PydanticValidationError as e:
                self.logger.warning("Discarding undecodable cache entry", key=key, error=str(e))
            else:
                self.metrics.inc_hit(route)
                self.logger.debug("Cache hit", key=key, route=route)
                return ReadResult(product=product, cached=True)

        self.metrics.inc_miss(route)
        self.logger.debug("Cache miss", key=key, route=route)

        product = await self.backing_store.get(route, key)
        if product is None:
            raise NotFoundError(key)

        await self.cache.set(key, product.to_cache(), self.ttl_seconds)
        return ReadResult(product=product, cached=False)
