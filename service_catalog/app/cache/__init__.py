"""
Cache package for Catalog Service.

Provides the Redis-backed cache store used by the cache-aside reader.
Entries expire through Redis' native TTL; the service keeps no expiry
bookkeeping of its own.
"""
