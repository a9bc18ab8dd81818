"""FastAPI application exposing the indicator pipeline.

Endpoints:
- GET /health                public, not rate limited
- GET /api/scrape-webpage    primary source only (retried, fallback on exhaustion)
- GET /api/scrape-bitnest    legacy path of /api/scrape-webpage
- GET /api/scrape-telegram   secondary source only
- GET /api/scrape-dual       both sources, cross-validated, cached (?refresh=true bypasses)

Every error body has the shape ``{"success": false, "error": "..."}``.

Run:
    uvicorn indicator_system.api.server:create_app --factory --port 8080
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from indicator_system import __version__
from indicator_system.api.auth import require_api_key
from indicator_system.api.rate_limiter import ClientRateLimiter, enforce_rate_limit
from indicator_system.config.logging import get_logger
from indicator_system.config.settings import Settings, settings
from indicator_system.pipeline import IndicatorPipeline

logger = get_logger("api")

protected = [Depends(enforce_rate_limit), Depends(require_api_key)]


def create_app(
    pipeline: Optional[IndicatorPipeline] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        pipeline: Pipeline serving the endpoints. Built from settings if None.
        app_settings: Configuration. Defaults to the global settings singleton.

    Returns:
        Configured FastAPI application; the pipeline's sources are connected
        on startup and disconnected on shutdown.
    """
    app_settings = app_settings or settings
    pipeline = pipeline or IndicatorPipeline.from_settings(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await pipeline.start()
        logger.info(
            "Indicator API started",
            port=app_settings.port,
            cache_ttl_ms=app_settings.cache_ttl_ms,
        )
        yield
        await pipeline.stop()
        logger.info("Indicator API stopped")

    app = FastAPI(title="Indicator Monitor API", version=__version__, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.pipeline = pipeline
    app.state.rate_limiter = ClientRateLimiter(
        max_requests=app_settings.rate_limit_max_requests,
        window_ms=app_settings.rate_limit_window_ms,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(
            "Incoming request",
            method=request.method,
            path=request.url.path,
            ip=request.client.host if request.client else None,
        )
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            body: dict[str, Any] = {"success": False, "error": "Endpoint not found"}
        elif isinstance(exc.detail, dict):
            body = {"success": False, **exc.detail}
        else:
            body = {"success": False, "error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return pipeline.health()

    @app.get("/api/scrape-webpage", dependencies=protected)
    @app.get("/api/scrape-bitnest", dependencies=protected, include_in_schema=False)
    async def scrape_webpage() -> dict[str, Any]:
        body = await pipeline.extract_webhook()
        if not body["success"]:
            logger.warning("Webpage extraction failed, returning fallback", error=body["error"])
        return body

    @app.get("/api/scrape-telegram", dependencies=protected)
    async def scrape_telegram() -> dict[str, Any]:
        body = await pipeline.extract_telegram()
        if not body["success"]:
            logger.warning("Telegram extraction failed", error=body["error"])
        return body

    @app.get("/api/scrape-dual", dependencies=protected)
    async def scrape_dual(
        refresh: bool = Query(default=False, description="Bypass the result cache"),
    ) -> dict[str, Any]:
        body = await pipeline.extract_dual(use_cache=not refresh)
        logger.info(
            "Dual-source extraction served",
            validation_status=body["validation"]["status"],
            cache_age_ms=body.get("metadata", {}).get("cache_age_ms"),
        )
        return body

    return app
