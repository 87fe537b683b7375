"""
Persistence package for Catalog Service.

- postgres: asyncpg repository reading products and their enrichment.
- backing_store: latency-injecting adapter the read path talks to.
"""
