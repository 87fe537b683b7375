"""
Integration tests for the cache-aside flow against a running service.

Requires a live catalog service backed by Redis and a seeded PostgreSQL
catalog; set CATALOG_BASE_URL (e.g. http://localhost:3000) to enable.
"""

import os

import httpx
import pytest

BASE_URL = os.getenv("CATALOG_BASE_URL")

pytestmark = pytest.mark.skipif(not BASE_URL, reason="CATALOG_BASE_URL not set")


class TestCacheAsideFlow:
    """Integration tests for cached vs uncached reads."""

    @pytest.mark.asyncio
    async def test_reset_warm_and_read(self):
        """Test reset, cold read, warm read and metrics exposition."""
        async with httpx.AsyncClient(base_url=BASE_URL, timeout=30) as client:
            reset = await client.post("/reset")
            assert reset.status_code == 200

            cold = await client.get("/cache/SKU-1")
            warm = await client.get("/cache/SKU-1")
            assert cold.status_code == 200
            assert cold.json()["cached"] is False
            assert warm.json()["cached"] is True
            assert warm.json()["finalPrice"] == cold.json()["finalPrice"]

            metrics = await client.get("/metrics")
            assert 'cache_hits_total{route="/cache/:sku"} 1.0' in metrics.text

    @pytest.mark.asyncio
    async def test_cached_reads_are_faster_than_uncached(self):
        """Test the cached path beats the direct database path."""
        async with httpx.AsyncClient(base_url=BASE_URL, timeout=30) as client:
            await client.post("/reset")
            await client.post("/simulate-load", json={"count": 5})

            cached = []
            uncached = []
            for _ in range(10):
                response = await client.get("/cache/SKU-2")
                cached.append(response.elapsed.total_seconds())
                response = await client.get("/nocache/SKU-2")
                uncached.append(response.elapsed.total_seconds())

            assert sum(cached) < sum(uncached)
