"""
Catalog service for the Catalog Cache-Aside Service.
"""

import asyncio
from typing import Any, Dict, Optional

import redis.asyncio as redis

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import NotFoundError, TransportError, ValidationError
from shared.latency import DelayStrategy, fixed_delay
from shared.metrics import MetricsRecorder

from .cache.redis_cache import RedisCache
from .control import ControlPlane
from .loadgen import LoadGenerator
from .models import LoadRequest, Product
from .persistence.backing_store import BackingStore
from .persistence.postgres import PostgresProductRepository
from .reader import CACHE_ROUTE, STATUS_OK, CacheAsideReader, finish_observed, metric_status

NOCACHE_ROUTE = "/nocache/:sku"
LOAD_ROUTE = "/simulate-load"
RESET_ROUTE = "/reset"

SERVICE_NAME = "catalog"
SERVICE_PORT = 3000


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        metrics: Optional[MetricsRecorder] = None,
        repository: Optional[Any] = None,
        redis_client: Optional[redis.Redis] = None,
        db_delay: Optional[DelayStrategy] = None,
        cache_delay: Optional[DelayStrategy] = None,
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config=config, metrics=metrics)

        self.repository = repository or PostgresProductRepository(self.config.postgres_dsn)
        self.cache = RedisCache(
            self.config.redis_url,
            delay=cache_delay or fixed_delay(self.config.cache_latency_ms),
            client=redis_client,
            key_prefix=self.config.cache_key_prefix,
        )
        self.backing_store = BackingStore(
            self.repository,
            self.metrics,
            delay=db_delay or fixed_delay(self.config.db_latency_ms),
        )
        self.reader = CacheAsideReader(
            self.cache,
            self.backing_store,
            self.metrics,
            ttl_seconds=self.config.cache_ttl_seconds,
        )
        self.load_generator = LoadGenerator(
            self.reader,
            key_prefix=self.config.load_key_prefix,
            key_space=self.config.load_key_space,
            max_concurrency=self.config.load_max_concurrency,
        )
        self.control_plane = ControlPlane(self.cache, self.metrics)

        self._setup_catalog_routes()

    async def on_startup(self):
        await self.repository.start()
        await self.cache.start()

    async def on_shutdown(self):
        await self.cache.stop()
        await self.repository.stop()

    def _setup_catalog_routes(self):
        """Set up catalog-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Catalog Cache-Aside Service",
                "version": "1.0.0",
                "capabilities": ["cache_aside", "load_simulation", "reset", "metrics"],
                "cache_ttl_seconds": self.config.cache_ttl_seconds,
                "hit_ratio": round(self.metrics.hit_ratio(CACHE_ROUTE), 4),
            }

        @self.app.get("/cache/{sku}")
        async def get_product_cached(sku: str):
            """Read a product through the cache-aside path."""
            result = await self.reader.read(
                CACHE_ROUTE, sku, timeout=self.config.request_timeout_seconds
            )
            return result.product.to_response(cached=result.cached)

        @self.app.get("/nocache/{sku}")
        async def get_product_uncached(sku: str):
            """Read a product straight from the backing store (baseline)."""
            product = await self._read_uncached(sku)
            return product.to_response(cached=False)

        @self.app.post(LOAD_ROUTE)
        async def simulate_load(request: Optional[LoadRequest] = None):
            """Fan out concurrent cached reads to warm the cache."""
            count = request.count if request is not None else LoadRequest().count
            end = self.metrics.observe("POST", LOAD_ROUTE)
            try:
                if count > self.config.max_load_count:
                    raise ValidationError(
                        f"count must not exceed {self.config.max_load_count}",
                        {"count": count},
                    )
                summary = await self.load_generator.warm(count)
            except (Exception, asyncio.CancelledError) as exc:
                end(metric_status(exc))
                raise

            end(STATUS_OK)
            return {
                "success": True,
                "message": f"Generated {count} requests to warm cache",
                "summary": summary.to_dict(),
            }

        @self.app.post(RESET_ROUTE)
        async def reset():
            """Flush the cache and zero cache-effectiveness counters."""
            end = self.metrics.observe("POST", RESET_ROUTE)
            try:
                result = await self.control_plane.reset()
            except (Exception, asyncio.CancelledError) as exc:
                end(metric_status(exc))
                raise

            end(STATUS_OK)
            return result

    async def _read_uncached(self, sku: str) -> Product:
        """Backing store read observed under the uncached route."""
        end = self.metrics.observe("GET", NOCACHE_ROUTE)
        return await finish_observed(
            end,
            self._fetch_required(sku),
            key=sku,
            timeout=self.config.request_timeout_seconds,
        )

    async def _fetch_required(self, sku: str) -> Product:
        product = await self.backing_store.get(NOCACHE_ROUTE, sku)
        if product is None:
            raise NotFoundError(sku)
        return product

    async def _check_dependencies(self) -> Dict[str, str]:
        dependencies = {
            "redis": "ok" if await self.cache.health_check() else "error",
            "postgres": "ok" if await self.repository.health_check() else "error",
        }
        failing = [name for name, status in dependencies.items() if status != "ok"]
        if failing:
            raise TransportError(", ".join(failing), "dependency unhealthy")
        return dependencies


def create_app(**kwargs):
    """Create catalog service application."""
    service = CatalogService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()
