import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pythonjsonlogger.json import JsonFormatter
from starlette.middleware.cors import CORSMiddleware

from boxoffice.core.database_manager import db_manager
from boxoffice.core.exceptions import RegistryError
from boxoffice.core.settings import get_settings
from boxoffice.middleware.monitoring import (
    MonitoringMiddleware,
    get_health_status,
    get_prometheus_metrics,
)
from boxoffice.services.payments import build_payment_gateway
from boxoffice.services.registry import close_registry, init_registry

from .api.api import api_router

settings = get_settings()

app = FastAPI(
    title="Boxoffice - Ticket-Sales Ledger",
    description="""
    **Boxoffice** keeps a catalog of events and records which identities hold
    tickets for them.

    * The registry owner creates events and withdraws the collected funds
    * Anyone holding an identity token can buy one ticket per event
    * Ticket holders can hand their ticket over to another identity

    ## 🔐 Authentication

    Caller identity is the `sub` claim of a bearer token:

    ```
    Authorization: Bearer <your_jwt_token>
    ```
    """,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
)

# Configure structured logging
log_handler = logging.StreamHandler()
formatter = JsonFormatter(
    "%(levelname)s %(asctime)s %(message)s %(name)s %(processName)s "
    "%(filename)s %(lineno)d",
    rename_fields={"levelname": "level", "asctime": "time", "name": "loggerName"},
)
log_handler.setFormatter(formatter)
logging.basicConfig(handlers=[log_handler], level=settings.monitoring.LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.info("Application logging configured.")

app.add_middleware(MonitoringMiddleware)

if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(RegistryError)  # type: ignore[misc]
async def registry_exception_handler(
    request: Request, exc: RegistryError
) -> JSONResponse:
    logger.warning(
        "Registry operation rejected: %s",
        exc.message,
        extra={"error": exc.error, "path": request.url.path},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.to_detail()},
    )


@app.exception_handler(HTTPException)  # type: ignore[misc]
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.error(
        "HTTPException occurred: %s",
        exc.detail,
        extra={"status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(Exception)  # type: ignore[misc]
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception occurred: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/", tags=["Root"], summary="API Welcome Message")  # type: ignore[misc]
async def root() -> dict[str, Any]:
    return {
        "message": "Welcome to Boxoffice - Ticket-Sales Ledger",
        "version": settings.VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
        "openapi": f"{settings.API_V1_PREFIX}/openapi.json",
        "status": "operational",
    }


@app.get("/health", tags=["Health"], summary="Health Check")  # type: ignore[misc]
async def health_check() -> dict[str, Any]:
    """
    Operational status of the service and its database.
    """
    return await get_health_status()


@app.get("/metrics", tags=["Monitoring"], summary="Prometheus Metrics")  # type: ignore[misc]
async def metrics() -> PlainTextResponse:
    """
    Prometheus metrics in exposition format.
    """
    if not settings.monitoring.ENABLE_PROMETHEUS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Metrics endpoint is disabled"
        )

    metrics_data = await get_prometheus_metrics()
    return PlainTextResponse(
        content=metrics_data, media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: schema, registry and database connections."""
    logger.info("🚀 Starting Boxoffice application...")

    if db_manager.session_factory is None:
        raise RuntimeError("Database session factory is not initialized")

    if settings.database.CREATE_TABLES or settings.TESTING:
        await db_manager.create_all()

    registry = await init_registry(
        db_manager.session_factory,
        owner=settings.registry.OWNER,
        payments=build_payment_gateway(),
    )
    logger.info("✅ Registry ready, owned by %s", await registry.get_owner())

    try:
        yield
    finally:
        logger.info("🛑 Shutting down Boxoffice application...")
        close_registry()
        await db_manager.close()
        logger.info("👋 Application shutdown completed")


app.router.lifespan_context = lifespan
