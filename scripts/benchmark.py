#!/usr/bin/env python3
"""
Compare throughput and latency of cached vs. uncached product reads.

Drives ``/cache/{sku}`` and ``/nocache/{sku}`` with a fixed number of
concurrent connections for a fixed duration and prints a side-by-side
comparison. The first cached request populates Redis from the database,
every later one is served from the cache.
"""

import argparse
import asyncio
import json
import os
import statistics
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import httpx


@dataclass
class BenchmarkResult:
    """Aggregated samples for one target."""
    name: str
    url: str
    duration_seconds: float
    latencies_ms: List[float] = field(default_factory=list)
    errors: int = 0

    @property
    def total(self) -> int:
        return len(self.latencies_ms)

    @property
    def throughput(self) -> float:
        return self.total / self.duration_seconds if self.duration_seconds else 0.0

    def percentile(self, pct: float) -> float:
        if not self.latencies_ms:
            return 0.0
        ordered = sorted(self.latencies_ms)
        index = min(len(ordered) - 1, int(round(pct / 100 * (len(ordered) - 1))))
        return ordered[index]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "url": self.url,
            "requests": self.total,
            "errors": self.errors,
            "throughput_rps": round(self.throughput, 2),
            "latency_ms": {
                "mean": round(statistics.fmean(self.latencies_ms), 2) if self.latencies_ms else 0.0,
                "p50": round(self.percentile(50), 2),
                "p97_5": round(self.percentile(97.5), 2),
                "p99": round(self.percentile(99), 2),
            },
        }


async def _connection(client: httpx.AsyncClient, url: str, deadline: float, result: BenchmarkResult):
    while time.perf_counter() < deadline:
        started = time.perf_counter()
        try:
            response = await client.get(url)
        except httpx.HTTPError:
            result.errors += 1
            continue
        if response.status_code != 200:
            result.errors += 1
            continue
        result.latencies_ms.append((time.perf_counter() - started) * 1000)


async def run_benchmark(name: str, url: str, *, connections: int, duration: float) -> BenchmarkResult:
    """Hammer one URL with ``connections`` concurrent loops for ``duration`` seconds."""
    result = BenchmarkResult(name=name, url=url, duration_seconds=duration)
    limits = httpx.Limits(max_connections=connections, max_keepalive_connections=connections)
    async with httpx.AsyncClient(limits=limits, timeout=10) as client:
        deadline = time.perf_counter() + duration
        await asyncio.gather(*(
            _connection(client, url, deadline, result) for _ in range(connections)
        ))
    return result


def _print_result(result: BenchmarkResult):
    data = result.to_dict()
    print(f"\n{'=' * 60}\n{result.name}\n{'=' * 60}")
    print(f"   Requests:     {data['requests']} total ({data['errors']} errors)")
    print(f"   Throughput:   {data['throughput_rps']:.2f} req/sec")
    print("   Latency:")
    print(f"     - Average:  {data['latency_ms']['mean']:.2f} ms")
    print(f"     - p50:      {data['latency_ms']['p50']:.2f} ms")
    print(f"     - p97.5:    {data['latency_ms']['p97_5']:.2f} ms")
    print(f"     - p99:      {data['latency_ms']['p99']:.2f} ms")


def _print_comparison(with_cache: BenchmarkResult, without_cache: BenchmarkResult):
    if not without_cache.throughput or not with_cache.latencies_ms or not without_cache.latencies_ms:
        print("\nNot enough samples for a comparison.")
        return

    speedup = with_cache.throughput / without_cache.throughput
    cached_mean = statistics.fmean(with_cache.latencies_ms)
    uncached_mean = statistics.fmean(without_cache.latencies_ms)
    reduction = (uncached_mean - cached_mean) / uncached_mean * 100

    print(f"\n{'=' * 60}\nPERFORMANCE COMPARISON\n{'=' * 60}")
    print(f"   Throughput: {with_cache.throughput:.2f} vs {without_cache.throughput:.2f} req/sec ({speedup:.1f}x)")
    print(f"   Latency:    {cached_mean:.2f} vs {uncached_mean:.2f} ms ({reduction:.1f}% lower)")


async def main(
    *,
    base_url: str,
    connections: int,
    duration: float,
    cached_sku: str,
    uncached_sku: str,
    pause: float,
    output: Optional[Path],
) -> dict:
    print("Cache-Aside Performance Benchmark")
    print(f"   Duration:     {duration} seconds")
    print(f"   Connections:  {connections}")
    print(f"   Target:       {base_url}")

    with_cache = await run_benchmark(
        "WITH Cache (Cache-Aside Pattern)",
        f"{base_url}/cache/{cached_sku}",
        connections=connections,
        duration=duration,
    )
    _print_result(with_cache)

    await asyncio.sleep(pause)

    without_cache = await run_benchmark(
        "WITHOUT Cache (Direct DB Access)",
        f"{base_url}/nocache/{uncached_sku}",
        connections=connections,
        duration=duration,
    )
    _print_result(without_cache)
    _print_comparison(with_cache, without_cache)

    summary = {"with_cache": with_cache.to_dict(), "without_cache": without_cache.to_dict()}
    if output:
        output.write_text(json.dumps(summary, indent=2))
    return summary


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark cached vs. uncached product reads.")
    parser.add_argument("--base-url", default=os.getenv("CATALOG_BASE_URL", "http://localhost:3000"), help="Catalog service URL")
    parser.add_argument("--connections", type=int, default=10, help="Concurrent connections")
    parser.add_argument("--duration", type=float, default=10.0, help="Seconds per target")
    parser.add_argument("--cached-sku", default="SKU-1", help="SKU read through the cache")
    parser.add_argument("--uncached-sku", default="SKU-2", help="SKU read directly from the database")
    parser.add_argument("--pause", type=float, default=3.0, help="Seconds to wait between targets")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON summary")
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    asyncio.run(main(
        base_url=args.base_url.rstrip("/"),
        connections=args.connections,
        duration=args.duration,
        cached_sku=args.cached_sku,
        uncached_sku=args.uncached_sku,
        pause=args.pause,
        output=args.output,
    ))
