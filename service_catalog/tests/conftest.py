"""
Fixtures shared by the Catalog Service tests.
"""

import asyncio
from typing import Dict, Optional

import fakeredis
import pytest
from fakeredis import aioredis as fakeredis_aioredis

from shared.config import get_config
from shared.errors import TransportError
from shared.latency import no_delay
from shared.metrics import MetricsRecorder
from service_catalog.app.cache.redis_cache import RedisCache
from service_catalog.app.models import Product
from service_catalog.app.persistence.backing_store import BackingStore
from service_catalog.app.reader import CacheAsideReader


def make_product(index: int, **overrides) -> Product:
    """Catalog row for SKU-<index>."""
    data = {
        "id": index,
        "sku": f"SKU-{index}",
        "name": f"Product {index}",
        "price": 1000 + index * 5,
        "discount": (index * 7) % 60,
        "inventory": 100,
        "category": "electronics",
        "brand": "Acme",
    }
    data.update(overrides)
    return Product(**data)


class InMemoryProductRepository:
    """Dict-backed stand-in for the PostgreSQL repository."""

    def __init__(self, products: Optional[Dict[str, Product]] = None):
        self.products = dict(products or {})
        self.calls = 0
        self.fail_with: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.started = False

    async def start(self):
        self.started = True

    async def stop(self):
        self.started = False

    async def health_check(self) -> bool:
        return self.fail_with is None

    async def fetch_product(self, sku: str) -> Optional[Product]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return self.products.get(sku)


@pytest.fixture
def products():
    catalog = {p.sku: p for p in (make_product(i) for i in range(2, 61))}
    catalog["SKU-1"] = make_product(1, price=1005, discount=10, name="Black Friday TV")
    return catalog


@pytest.fixture
def repository(products):
    return InMemoryProductRepository(products)


@pytest.fixture
def failing_repository():
    repo = InMemoryProductRepository()
    repo.fail_with = TransportError("postgres", "connection refused")
    return repo


@pytest.fixture
def metrics():
    return MetricsRecorder()


@pytest.fixture
def fake_redis():
    return fakeredis_aioredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture
def cache(fake_redis):
    return RedisCache("redis://test", delay=no_delay, client=fake_redis)


@pytest.fixture
def backing_store(repository, metrics):
    return BackingStore(repository, metrics, delay=no_delay)


@pytest.fixture
def reader(cache, backing_store, metrics):
    return CacheAsideReader(cache, backing_store, metrics, ttl_seconds=30)


@pytest.fixture
def service_config():
    return get_config("catalog", 3000, enable_runtime_metrics=False, log_level="warning")


async def _wait_until(predicate, timeout: float = 5.0):
    """Yield to the loop until ``predicate()`` holds or ``timeout`` expires."""
    async def poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def wait_until():
    return _wait_until
