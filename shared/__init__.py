"""
Shared utilities for the Catalog Cache-Aside Service.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics recorder with an owned registry
- latency: Injectable delay strategies for simulated round trips
- errors: Canonical error types and responses
- base_service: FastAPI service scaffolding

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
