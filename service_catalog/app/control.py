"""
Reset control plane for Catalog Service.
"""

from typing import Any, Dict

from shared.errors import PartialResetError
from shared.logging import get_logger
from shared.metrics import MetricsRecorder
from .cache.redis_cache import RedisCache


class ControlPlane:
    """Clears cache contents and cache-effectiveness counters.

    The two steps are not transactional: a flushed cache is not restored when
    the counter reset fails afterwards. Callers detect that case through
    ``PartialResetError`` and retry.
    """

    def __init__(self, cache: RedisCache, metrics: MetricsRecorder):
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("catalog.control")

    async def reset(self) -> Dict[str, Any]:
        # A flush failure propagates before counters are touched.
        await self.cache.flush()
        self.logger.info("Redis cache cleared")

        try:
            self.metrics.reset_counters()
        except Exception as e:
            self.logger.error("Metrics reset failed after cache flush", error=str(e))
            raise PartialResetError(
                f"Cache flushed but metrics reset failed: {e}",
                {"cleared": {"cache": True, "metrics": False}},
            ) from e
        self.logger.info("Prometheus metrics reset")

        return {
            "success": True,
            "message": (
                "Reset completed. Dashboards built on scraped history will clear "
                "as their time window passes."
            ),
            "cleared": {
                "cache": True,
                "metrics": True,
            },
            "note": "Request duration history and totals are kept; only cache hit, miss and DB read counters are zeroed.",
        }
