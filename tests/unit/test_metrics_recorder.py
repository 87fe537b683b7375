"""
Unit tests for the shared metrics recorder.
"""

import threading

import pytest
from prometheus_client import CONTENT_TYPE_LATEST

from shared.metrics import MetricsRecorder


class TestMetricsRecorder:
    """Test cases for MetricsRecorder."""

    @pytest.fixture
    def recorder(self):
        return MetricsRecorder()

    def test_fresh_instances_do_not_share_state(self):
        """Test each recorder owns its registry."""
        first = MetricsRecorder()
        second = MetricsRecorder()

        first.inc_hit("/cache/:sku")

        assert first.counter_value("cache_hits_total", "/cache/:sku") == 1
        assert second.counter_value("cache_hits_total", "/cache/:sku") == 0

    def test_observe_records_duration_and_count(self, recorder):
        """Test the end callable records one observation with its status."""
        end = recorder.observe("GET", "/cache/:sku")
        end(200)

        assert recorder.request_count("GET", "/cache/:sku", 200) == 1
        count = recorder.registry.get_sample_value(
            "http_request_duration_ms_count",
            {"method": "GET", "route": "/cache/:sku", "status": "200"},
        )
        assert count == 1

    def test_end_is_finalized_once(self, recorder):
        """Test calling end twice does not double count."""
        end = recorder.observe("POST", "/reset")
        end(200)
        end(500)

        assert recorder.request_count("POST", "/reset", 200) == 1
        assert recorder.request_count("POST", "/reset", 500) == 0

    def test_reset_counters_scope(self, recorder):
        """Test reset zeroes cache counters but keeps traffic history."""
        recorder.inc_hit("/cache/:sku")
        recorder.inc_miss("/cache/:sku")
        recorder.inc_backing_read("/cache/:sku")
        recorder.inc_backing_read("/nocache/:sku")
        recorder.observe("GET", "/cache/:sku")(200)

        recorder.reset_counters()

        assert recorder.counter_value("cache_hits_total", "/cache/:sku") == 0
        assert recorder.counter_value("cache_misses_total", "/cache/:sku") == 0
        assert recorder.counter_value("db_reads_total", "/cache/:sku") == 0
        assert recorder.counter_value("db_reads_total", "/nocache/:sku") == 0
        assert recorder.request_count("GET", "/cache/:sku", 200) == 1

    def test_reset_keeps_series(self, recorder):
        """Test zeroed series stay in the exposition."""
        recorder.inc_hit("/cache/:sku")
        recorder.reset_counters()

        text = recorder.export().decode("utf-8")

        assert 'cache_hits_total{route="/cache/:sku"} 0.0' in text

    def test_counters_increment_after_reset(self, recorder):
        """Test counters keep counting after a reset."""
        recorder.inc_miss("/cache/:sku")
        recorder.reset_counters()
        recorder.inc_miss("/cache/:sku")

        assert recorder.counter_value("cache_misses_total", "/cache/:sku") == 1

    def test_hit_ratio(self, recorder):
        """Test hit ratio over hits and misses."""
        assert recorder.hit_ratio("/cache/:sku") == 0.0

        recorder.inc_miss("/cache/:sku")
        for _ in range(3):
            recorder.inc_hit("/cache/:sku")

        assert recorder.hit_ratio("/cache/:sku") == 0.75

    def test_concurrent_increments_are_not_lost(self, recorder):
        """Test many threads incrementing the same counter."""
        def worker():
            for _ in range(1000):
                recorder.inc_backing_read("/cache/:sku")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert recorder.counter_value("db_reads_total", "/cache/:sku") == 8000

    def test_export_is_sorted(self, recorder):
        """Test families sort by name and samples by label set."""
        recorder.inc_hit("/zeta")
        recorder.inc_hit("/alpha")
        recorder.inc_backing_read("/beta")
        recorder.observe("GET", "/zeta")(200)
        recorder.observe("GET", "/alpha")(200)

        text = recorder.export().decode("utf-8")

        assert text.index("cache_hits_total") < text.index("db_reads_total")
        assert text.index("db_reads_total") < text.index("http_request_duration_ms")
        assert text.index('cache_hits_total{route="/alpha"}') < text.index('cache_hits_total{route="/zeta"}')
        lines = text.splitlines()
        buckets = [i for i, line in enumerate(lines) if line.startswith("http_request_duration_ms_bucket")]
        alpha = [i for i in buckets if 'route="/alpha"' in lines[i]]
        zeta = [i for i in buckets if 'route="/zeta"' in lines[i]]
        assert max(alpha) < min(zeta)
        assert 'le="0.001"' in lines[alpha[0]]
        assert 'le="+Inf"' in lines[alpha[-1]]

    def test_export_is_stable(self, recorder):
        """Test exporting twice without new traffic yields the same samples."""
        recorder.inc_hit("/cache/:sku")

        first = [line for line in recorder.export().decode().splitlines() if "_created" not in line]
        second = [line for line in recorder.export().decode().splitlines() if "_created" not in line]

        assert first == second

    def test_content_type(self, recorder):
        """Test the declared exposition content type."""
        assert recorder.content_type == CONTENT_TYPE_LATEST

    def test_runtime_collectors(self):
        """Test process collectors register on the owned registry."""
        recorder = MetricsRecorder(include_runtime=True)

        text = recorder.export().decode("utf-8")

        assert "python_info" in text
