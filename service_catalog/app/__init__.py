"""
Catalog Service package for the Catalog Cache-Aside Service.

This package serves product reads through a Redis cache in front of a
PostgreSQL catalog and makes the cached vs. uncached latency delta
observable through Prometheus metrics.

Structure:
- app.main: FastAPI app, routes, and dependency wiring.
- app.reader: Cache-aside read path (check cache, fall back, populate).
- app.cache: Redis-backed cache store adapter with simulated latency.
- app.persistence: PostgreSQL product repository and backing store adapter.
- app.loadgen: Concurrent load generator used to warm the cache.
- app.control: Reset control plane (cache flush + counter reset).

Guidelines:
- Collaborators are injected; nothing here owns a global singleton.
- Reads may be stale for up to the cache TTL.
"""
