"""
Unit tests for the reset control plane.
"""

from unittest.mock import AsyncMock, patch

import pytest

from shared.errors import PartialResetError, TransportError
from service_catalog.app.control import ControlPlane
from service_catalog.app.reader import CACHE_ROUTE


class TestControlPlane:
    """Test cases for ControlPlane."""

    @pytest.fixture
    def control_plane(self, cache, metrics):
        return ControlPlane(cache, metrics)

    @pytest.mark.asyncio
    async def test_reset_clears_cache_and_counters(self, control_plane, reader, metrics, fake_redis):
        """Test reset empties the cache and zeroes cache counters."""
        await reader.read(CACHE_ROUTE, "SKU-1")
        await reader.read(CACHE_ROUTE, "SKU-1")

        result = await control_plane.reset()

        assert result["success"] is True
        assert result["cleared"] == {"cache": True, "metrics": True}
        assert await fake_redis.dbsize() == 0
        for name in ("cache_hits_total", "cache_misses_total", "db_reads_total"):
            assert metrics.counter_value(name, CACHE_ROUTE) == 0
        # Traffic history survives a reset.
        assert metrics.request_count("GET", CACHE_ROUTE, 200) == 2

    @pytest.mark.asyncio
    async def test_reset_is_idempotent(self, control_plane, reader, metrics, fake_redis):
        """Test a second reset is a no-op with the same end state."""
        await reader.read(CACHE_ROUTE, "SKU-2")

        first = await control_plane.reset()
        second = await control_plane.reset()

        assert first == second
        assert await fake_redis.dbsize() == 0
        assert metrics.counter_value("cache_misses_total", CACHE_ROUTE) == 0

    @pytest.mark.asyncio
    async def test_read_after_reset_is_a_miss(self, control_plane, reader):
        """Test the cache is cold after a reset."""
        await reader.read(CACHE_ROUTE, "SKU-2")
        await control_plane.reset()

        result = await reader.read(CACHE_ROUTE, "SKU-2")

        assert result.cached is False

    @pytest.mark.asyncio
    async def test_flush_failure_leaves_counters_untouched(self, control_plane, reader, cache, metrics):
        """Test counters are not reset when the flush fails."""
        await reader.read(CACHE_ROUTE, "SKU-2")

        with patch.object(cache, "flush", new_callable=AsyncMock) as mock_flush:
            mock_flush.side_effect = TransportError("redis", "connection refused")
            with patch.object(metrics, "reset_counters") as mock_reset:
                with pytest.raises(TransportError):
                    await control_plane.reset()

                mock_reset.assert_not_called()

        assert metrics.counter_value("cache_misses_total", CACHE_ROUTE) == 1

    @pytest.mark.asyncio
    async def test_metrics_failure_reports_partial_reset(self, control_plane, reader, metrics, fake_redis):
        """Test a flushed cache with failed counter reset is detectable."""
        await reader.read(CACHE_ROUTE, "SKU-2")

        with patch.object(metrics, "reset_counters", side_effect=RuntimeError("registry locked")):
            with pytest.raises(PartialResetError) as exc_info:
                await control_plane.reset()

        assert exc_info.value.details["cleared"] == {"cache": True, "metrics": False}
        assert await fake_redis.dbsize() == 0
