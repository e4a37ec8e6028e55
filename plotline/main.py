"""
Plotline - FastAPI Application

Main entry point for the API server.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from plotline.api import api_router
from plotline.api.routes.health import log_error, log_request
from plotline.config import get_settings
from plotline.models.common import ErrorResponse
from plotline.services.database import init_db
from plotline.services.errors import OutlineError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)


class RequestIdFilter(logging.Filter):
    """Filter that adds request_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


for handler in logging.root.handlers:
    handler.addFilter(RequestIdFilter())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Creates missing tables on startup.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Word count mode: {settings.word_count_mode}")

    init_db()

    yield

    logger.info("Shutting down...")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with a short id and records how it went.

    Successful calls are logged at INFO, client errors at WARNING with the
    domain error code when one was raised, and crashes with a traceback.
    Every call lands in the diagnostics buffer.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()
        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as exc:
            entry["duration_ms"] = _elapsed_ms(started)
            logger.exception(
                f"{entry['method']} {entry['path']} crashed after {entry['duration_ms']}ms",
                extra={"request_id": request_id},
            )
            log_error({**entry, "error": str(exc), "error_type": type(exc).__name__})
            raise

        entry["status_code"] = response.status_code
        entry["duration_ms"] = _elapsed_ms(started)
        error_code = getattr(request.state, "error_code", None)
        if error_code:
            entry["error_code"] = error_code

        summary = f"{entry['method']} {entry['path']} -> {response.status_code} ({entry['duration_ms']}ms)"
        if response.status_code >= 400:
            level = logging.ERROR if response.status_code >= 500 else logging.WARNING
            logger.log(
                level,
                f"{summary} [{error_code or 'http'}]",
                extra={"request_id": request_id},
            )
        else:
            logger.info(summary, extra={"request_id": request_id})

        log_request(entry)
        response.headers["X-Request-ID"] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _error_response(status_code: int, error: str, code: str, request: Request, detail: str | None = None) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    request.state.error_code = code
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, code=code).model_dump(mode="json"),
        headers={"X-Request-ID": request_id},
    )


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Plot outline manager for novel-writing projects",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Request logging must wrap CORS
    app.add_middleware(RequestLoggingMiddleware)

    if settings.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router, prefix="/api")

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if settings.is_development else None,
            "health": "/api/health",
        }

    @app.exception_handler(OutlineError)
    async def outline_error_handler(request: Request, exc: OutlineError):
        """Render domain errors with their own status and code."""
        if exc.status_code >= 500:
            logger.error(
                f"{type(exc).__name__}: {exc.message}",
                extra={"request_id": getattr(request.state, "request_id", "-")}
            )
        return _error_response(exc.status_code, exc.message, exc.code, request)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies and parameters are client errors."""
        fields = sorted({
            ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
            for error in exc.errors()
        })
        return _error_response(
            400,
            f"Invalid request: {', '.join(fields)}",
            "validation_error",
            request,
            detail=None if settings.is_production else str(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = "internal_error" if exc.status_code >= 500 else "http_error"
        return _error_response(exc.status_code, str(exc.detail), code, request)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception(
            f"Unhandled exception: {exc}",
            extra={"request_id": request_id}
        )

        log_error({
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
            "error_type": type(exc).__name__,
        })

        return _error_response(500, "Internal server error", "internal_error", request)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "plotline.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
