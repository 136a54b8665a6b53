"""
FastAPI skeleton shared by the FeedBacks services.

Every service built on it answers errors in one envelope
(``ErrorResponse``), tags each request with an ``X-Request-ID`` that also
lands in every log line, and exposes ``/health`` and ``/metrics``.
"""

import os
import time
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config import ServiceConfig, get_config
from .errors import ErrorResponse, FeedbacksException, ValidationError
from .logging import clear_context, configure_logging, get_logger, get_request_id, set_request_id
from .metrics import get_metrics_collector

HEALTHY = "ok"
REQUEST_ID_HEADER = "X-Request-ID"


class BaseService:
    """Base class for a FeedBacks HTTP service.

    Subclasses add their routes after ``super().__init__`` and may override
    ``start``, ``stop`` and ``_check_dependencies``.
    """

    version = "1.0.0"

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)
        configure_logging(service_name, self.config.log_level)

        self.logger = get_logger(f"feedbacks.{service_name}")
        self.metrics = get_metrics_collector(service_name)
        self._started_at = time.monotonic()

        self.app = self._create_app()
        self._install_middleware()
        self._install_error_handlers()
        self._install_operational_routes()

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.start()
            try:
                yield
            finally:
                await self.stop()

        interactive_docs = self.config.env == "local"
        return FastAPI(
            title=f"FeedBacks {self.service_name.title()}",
            version=self.version,
            docs_url="/docs" if interactive_docs else None,
            redoc_url="/redoc" if interactive_docs else None,
            lifespan=lifespan,
        )

    def _install_middleware(self):
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
            started = time.perf_counter()
            try:
                response = await call_next(request)
                duration = time.perf_counter() - started

                # Label by route template, not raw path, so document ids stay out of metrics.
                route = request.scope.get("route")
                endpoint = getattr(route, "path", request.url.path)
                self.metrics.record_http_request(request.method, endpoint, response.status_code, duration)
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    endpoint=endpoint,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )
                response.headers[REQUEST_ID_HEADER] = request_id
                return response
            finally:
                clear_context()

    def _install_error_handlers(self):

        def error_response(exc: FeedbacksException) -> JSONResponse:
            self.metrics.record_error(exc.code)
            return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

        @self.app.exception_handler(FeedbacksException)
        async def feedbacks_error(request: Request, exc: FeedbacksException):
            log = self.logger.warning if exc.status_code < 500 else self.logger.error
            log(
                "Request failed",
                code=exc.code,
                message=exc.message,
                details=exc.details,
                path=request.url.path
            )
            return error_response(exc)

        @self.app.exception_handler(RequestValidationError)
        async def request_shape_error(request: Request, exc: RequestValidationError):
            errors = [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
                for error in exc.errors()
            ]
            self.logger.info("Malformed request", path=request.url.path, errors=len(errors))
            return error_response(ValidationError("Request payload is invalid", details={"errors": errors}))

        @self.app.exception_handler(Exception)
        async def unexpected_error(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            body = ErrorResponse(
                request_id=get_request_id(),
                code="INTERNAL_ERROR",
                message="Internal server error"
            )
            return JSONResponse(status_code=500, content=body.model_dump())

    def _install_operational_routes(self):

        @self.app.get("/health")
        async def health():
            """Liveness plus the state of external collaborators.

            A collaborator that is not ``ok`` marks the service degraded but
            still answers 200: reads keep working without it.
            """
            try:
                dependencies = await self._check_dependencies()
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={"service": self.service_name, "status": "error", "error": str(e)}
                )

            status = HEALTHY if all(state == HEALTHY for state in dependencies.values()) else "degraded"
            self.metrics.record_health_check(status)
            return {
                "service": self.service_name,
                "status": status,
                "uptime_seconds": round(time.monotonic() - self._started_at, 3),
                "dependencies": dependencies,
                "version": self.version,
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }

        @self.app.get("/metrics")
        async def metrics():
            """Prometheus exposition of this service's registry."""
            return Response(content=generate_latest(self.metrics.registry), media_type=CONTENT_TYPE_LATEST)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Map of collaborator name to state; ``ok`` when healthy."""
        return {}

    async def start(self):
        """Called once when the app starts serving."""

    async def stop(self):
        """Called once on shutdown."""

    def run(self):
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
