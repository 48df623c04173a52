"""
Masmaa API

FastAPI backend for the bilingual blog: posts, rendered content,
Editors' Choice scheduling and media uploads.
"""

import logging
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from masmaa.config import get_settings
from masmaa.middleware import RequestIDFilter, RequestIDMiddleware, SecurityHeadersMiddleware
from masmaa.routers import authors, blog, editors_choice, uploads
from masmaa.services.blob_storage import StorageError, check_storage_connectivity
from masmaa.services.http_client import close_shared_client

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Root logging with the request ID on every line."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIDFilter) for f in handler.filters):
            handler.addFilter(RequestIDFilter())


settings = get_settings()
configure_logging(settings.debug)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    yield
    await close_shared_client()


app = FastAPI(
    title="Masmaa API",
    description="Bilingual blog content, Editors' Choice scheduling and media uploads",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(SecurityHeadersMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# Request ID: added last so it wraps every other middleware
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Storage unavailable"})


# Routers
app.include_router(blog.router, prefix="/api/masmaa")
app.include_router(editors_choice.router, prefix="/api/masmaa")
app.include_router(uploads.router, prefix="/api/masmaa")
app.include_router(authors.router, prefix="/api/masmaa")


def _config_loaded() -> bool:
    s = get_settings()
    return bool(s.azure_storage_account and s.azure_content_container and s.auth_jwt_secret)


_HEALTH_CHECKS: dict[str, Callable[[], bool]] = {
    "config": _config_loaded,
    "storage": check_storage_connectivity,
}

# (body, monotonic timestamp) of the last probe
_health_cache: tuple[dict[str, Any], float] | None = None
HEALTH_CACHE_SECONDS = 30


def _probe() -> dict[str, Any]:
    global _health_cache
    now = time.monotonic()
    if _health_cache is not None and now - _health_cache[1] < HEALTH_CACHE_SECONDS:
        return _health_cache[0]

    checks = {name: "ok" if check() else "fail" for name, check in _HEALTH_CHECKS.items()}
    failing = sorted(name for name, state in checks.items() if state == "fail")
    if failing:
        logger.warning("Health check degraded, failing checks: %s", ", ".join(failing))

    body: dict[str, Any] = {
        "status": "degraded" if failing else "ok",
        "service": "masmaa-api",
        "version": app.version,
        "checks": checks,
    }
    _health_cache = (body, now)
    return body


@app.get("/api/masmaa/health")
async def health_check() -> dict[str, Any]:
    """Report dependency status. Degraded checks still answer 200."""
    return _probe()
