"""
Load testing for the Catalog Cache-Aside Service using Locust.

This file contains load profiles for:
- Cached product reads (/cache/{sku})
- Uncached baseline reads (/nocache/{sku})
- Periodic cache warm bursts and metrics scrapes
"""

import os
import random

from locust import HttpUser, between, events, task

HOT_SKUS = [f"SKU-{i}" for i in range(1, 21)]
KEY_SPACE = int(os.getenv("CATALOG_LOAD_KEY_SPACE", "100"))


class CachedReader(HttpUser):
    """Reads through the cache, mostly on hot keys."""

    wait_time = between(0.01, 0.1)

    @task(8)
    def read_hot_product(self):
        sku = random.choice(HOT_SKUS)
        with self.client.get(f"/cache/{sku}", name="/cache/:sku", catch_response=True) as response:
            if response.status_code == 404:
                response.success()

    @task(2)
    def read_long_tail_product(self):
        sku = f"SKU-{random.randint(1, KEY_SPACE)}"
        with self.client.get(f"/cache/{sku}", name="/cache/:sku", catch_response=True) as response:
            if response.status_code == 404:
                response.success()

    @task(1)
    def scrape_metrics(self):
        self.client.get("/metrics")

    @task(1)
    def warm_burst(self):
        self.client.post("/simulate-load", json={"count": 20})


class UncachedReader(HttpUser):
    """Baseline traffic straight to the database."""

    wait_time = between(0.01, 0.1)

    @task
    def read_product(self):
        sku = random.choice(HOT_SKUS)
        with self.client.get(f"/nocache/{sku}", name="/nocache/:sku", catch_response=True) as response:
            if response.status_code == 404:
                response.success()


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Start every run from a cold cache and zeroed counters."""
    if environment.host:
        import httpx
        httpx.post(f"{environment.host.rstrip('/')}/reset", timeout=10)
