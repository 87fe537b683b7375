"""
Concurrent load generator for Catalog Service.

Fans out a burst of cache-aside reads to warm the cache and produce
throughput samples comparable between cached and uncached runs.
"""

import asyncio
import time
from typing import List, Optional

from shared.errors import LoadGenerationError, NotFoundError, ValidationError
from shared.logging import get_logger
from .models import LoadSummary, ReadResult
from .reader import CACHE_ROUTE, CacheAsideReader


class LoadGenerator:
    """Issues bursts of concurrent reads against the cache-aside path."""

    def __init__(
        self,
        reader: CacheAsideReader,
        *,
        key_prefix: str = "SKU-",
        key_space: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        route: str = CACHE_ROUTE,
    ):
        if key_space is not None and key_space < 1:
            raise ValueError("key_space must be positive")
        self.reader = reader
        self.key_prefix = key_prefix
        self.key_space = key_space
        self.route = route
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self.logger = get_logger("catalog.loadgen")

    def keys(self, count: int, start: int = 1) -> List[str]:
        """Keys for a burst, wrapped into ``key_space`` when one is set."""
        indexes = range(start, start + count)
        if self.key_space:
            indexes = [((i - 1) % self.key_space) + 1 for i in indexes]
        return [f"{self.key_prefix}{i}" for i in indexes]

    async def warm(self, count: int, *, start: int = 1) -> LoadSummary:
        """Issue ``count`` concurrent reads and wait for every one to resolve.

        A failed read never aborts its siblings. Cancelling ``warm`` cancels
        all in-flight reads; one blocked in a Redis command stops once the
        client honours the cancel.
        """
        if count < 0:
            raise ValidationError("count must be non-negative", {"count": count})

        summary = LoadSummary(requested=count)
        if count == 0:
            return summary

        keys = self.keys(count, start)
        started = time.perf_counter()

        tasks: List[asyncio.Task] = []
        try:
            loop = asyncio.get_running_loop()
            for key in keys:
                tasks.append(loop.create_task(self._issue(key)))
        except RuntimeError as e:
            for task in tasks:
                task.cancel()
            self.logger.error("Failed to schedule load burst", count=count, error=str(e))
            raise LoadGenerationError(str(e), {"count": count, "scheduled": len(tasks)})

        results = await asyncio.gather(*tasks, return_exceptions=True)

        for outcome in results:
            if isinstance(outcome, ReadResult):
                summary.succeeded += 1
                if outcome.cached:
                    summary.cached += 1
            elif isinstance(outcome, NotFoundError):
                summary.not_found += 1
            else:
                summary.failed += 1
                summary.errors.append(str(outcome) or type(outcome).__name__)

        summary.duration_ms = (time.perf_counter() - started) * 1000

        self.logger.info(
            "Load burst completed",
            requested=summary.requested,
            succeeded=summary.succeeded,
            cached=summary.cached,
            not_found=summary.not_found,
            failed=summary.failed,
            duration_ms=round(summary.duration_ms, 2),
        )
        return summary

    async def _issue(self, key: str) -> ReadResult:
        if self._semaphore is None:
            return await self.reader.read(self.route, key)
        async with self._semaphore:
            return await self.reader.read(self.route, key)
