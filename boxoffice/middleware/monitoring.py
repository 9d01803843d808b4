"""
Monitoring & Observability Middleware
Provides request tracking, Prometheus metrics and structured request logs.
"""

import logging
import time
import traceback
import uuid
from typing import Any, Callable, Dict

import structlog
from fastapi import Request, Response
from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from boxoffice.core.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        (
            structlog.processors.JSONRenderer()
            if settings.monitoring.LOG_FORMAT == "json"
            else structlog.dev.ConsoleRenderer()
        ),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

struct_logger = structlog.get_logger()


class PrometheusMetrics:
    """Prometheus metrics collection"""

    def __init__(self) -> None:
        # HTTP metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
        )

        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency",
            ["method", "endpoint"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.active_connections = Gauge(
            "active_connections", "Number of active connections"
        )

        self.errors_total = Counter(
            "errors_total", "Total unhandled application errors", ["error_type", "endpoint"]
        )

        # Business metrics
        self.events_created_total = Counter(
            "events_created_total", "Total events created"
        )
        self.tickets_sold_total = Counter("tickets_sold_total", "Total tickets sold")
        self.tickets_resold_total = Counter(
            "tickets_resold_total", "Total tickets handed over by resale"
        )
        self.funds_withdrawn_total = Counter(
            "funds_withdrawn_total", "Total amount paid out to the registry owner"
        )
        self.registry_errors_total = Counter(
            "registry_errors_total", "Rejected registry operations", ["error"]
        )

    def record_request(
        self, method: str, endpoint: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics"""
        self.http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def record_error(self, error_type: str, endpoint: str) -> None:
        """Record application error"""
        self.errors_total.labels(error_type=error_type, endpoint=endpoint).inc()

    def record_registry_error(self, error: str) -> None:
        self.registry_errors_total.labels(error=error).inc()


metrics = PrometheusMetrics()


def _route_template(request: Request) -> str:
    # Label with the route template so event names do not explode cardinality
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """
    Monitoring middleware providing:
    - Request ids and timing headers
    - Prometheus request metrics
    - Structured request logs
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        client_ip = self._get_client_ip(request)

        struct_logger.info(
            "request_started",
            request_id=request_id,
            method=request.method,
            url=str(request.url),
            client_ip=client_ip,
        )

        start_time = time.time()
        self.metrics.active_connections.inc()
        try:
            response = await call_next(request)
            duration = time.time() - start_time

            self.metrics.record_request(
                request.method,
                _route_template(request),
                response.status_code,
                duration,
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration:.3f}s"

            struct_logger.info(
                "request_completed",
                request_id=request_id,
                method=request.method,
                url=str(request.url),
                status_code=response.status_code,
                duration=duration,
                client_ip=client_ip,
            )
            return response

        except Exception as e:
            duration = time.time() - start_time
            self.metrics.record_error(e.__class__.__name__, _route_template(request))
            struct_logger.error(
                "request_failed",
                request_id=request_id,
                method=request.method,
                url=str(request.url),
                duration=duration,
                error=str(e),
                error_type=e.__class__.__name__,
                traceback=traceback.format_exc(),
                client_ip=client_ip,
            )
            raise

        finally:
            self.metrics.active_connections.dec()

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address"""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return str(forwarded.split(",")[0].strip())

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return str(real_ip.strip())

        return str(request.client.host) if request.client else "unknown"


async def get_health_status() -> Dict[str, Any]:
    """Get health status of the service and its database"""
    from boxoffice.core.database_manager import db_manager

    db_health = await db_manager.health_check()

    return {
        "status": "healthy" if db_health.get("status") == "healthy" else "degraded",
        "system": {
            "timestamp": time.time(),
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        },
        "database": db_health,
        "checks": {"database": db_health.get("status") == "healthy"},
    }


async def get_prometheus_metrics() -> str:
    """Get Prometheus metrics"""
    return str(generate_latest().decode("utf-8"))
