"""
Base service class for catalog services.

Subclasses get a FastAPI app with lifespan hooks, request correlation and
logging middleware, ``/health`` and ``/metrics`` endpoints, and exception
handlers that render ``CatalogException`` as an ``ErrorResponse``.
"""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
import time
import os

from shared.config import ServiceConfig, get_config
from shared.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
    set_route,
)
from shared.metrics import MetricsRecorder
from shared.errors import CatalogException

REQUEST_ID_HEADER = "X-Request-ID"
SERVICE_VERSION = "1.0.0"


class BaseService:
    """Base service class with common functionality."""

    def __init__(
        self,
        service_name: str,
        port: int,
        config: Optional[ServiceConfig] = None,
        metrics: Optional[MetricsRecorder] = None,
    ):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)

        configure_logging(service_name, self.config.log_level, json_logs=self.config.env != "local")
        self.logger = get_logger(f"{service_name}.service")

        self.metrics = metrics or MetricsRecorder(include_runtime=self.config.enable_runtime_metrics)
        self._started_at = time.monotonic()

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._register_exception_handlers()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        local = self.config.env == "local"
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Catalog Cache-Aside - {self.service_name.title()} Service",
            version=SERVICE_VERSION,
            docs_url="/docs" if local else None,
            redoc_url="/redoc" if local else None,
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.on_startup()
        self.logger.info("Service started", port=self.port, env=self.config.env)
        try:
            yield
        finally:
            await self.on_shutdown()
            self.logger.info("Service stopped")

    async def on_startup(self):
        """Connect external dependencies. Override in subclasses."""

    async def on_shutdown(self):
        """Release external dependencies. Override in subclasses."""

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Handlers record request metrics per route; this only correlates and logs.
        @self.app.middleware("http")
        async def correlate_request(request: Request, call_next):
            clear_context()
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
            started = time.perf_counter()

            response = await call_next(request)

            matched = request.scope.get("route")
            set_route(getattr(matched, "path", None))
            response.headers[REQUEST_ID_HEADER] = request_id
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return response

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Report dependency status; 503 when any check fails."""
            try:
                dependencies = await self._check_dependencies()
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e),
                    },
                )
            return self._health_payload(dependencies)

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus text exposition of this service's registry."""
            return Response(
                content=self.metrics.export(),
                media_type=self.metrics.content_type,
            )

    def _register_exception_handlers(self):

        @self.app.exception_handler(CatalogException)
        async def catalog_exception_handler(request: Request, exc: CatalogException):
            log = self.logger.error if exc.status_code >= 500 else self.logger.info
            log("Request failed", code=exc.code, message=exc.message, details=exc.details)
            return self._error_response(exc.status_code, exc.to_response().model_dump())

        @self.app.exception_handler(Exception)
        async def unhandled_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return self._error_response(
                500,
                {"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
            )

    def _error_response(self, status_code: int, content: Dict[str, Any]) -> JSONResponse:
        # Unhandled errors bypass the middleware, so the header is set here too.
        headers = {}
        request_id = get_request_id()
        if request_id:
            headers[REQUEST_ID_HEADER] = request_id
        return JSONResponse(status_code=status_code, content=content, headers=headers)

    def _health_payload(self, dependencies: Dict[str, str]) -> Dict[str, Any]:
        return {
            "service": self.service_name,
            "status": "ok",
            "uptime_seconds": round(time.monotonic() - self._started_at, 3),
            "dependencies": dependencies,
            "version": SERVICE_VERSION,
            "commit": os.getenv("GIT_COMMIT", "unknown"),
        }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def run(self):
        """Run the service under uvicorn."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
