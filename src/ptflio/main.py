"""ptflio HTTP application.

``create_app()`` assembles the FastAPI app around a ``ServiceContainer``:

- the lifespan connects the cache on startup and releases every client on
  shutdown
- a request middleware tags each request (and every log line it produces)
  with an ``X-Request-ID``
- exception handlers render every failure as ``{"error": {...}}``
- the v1 router serves the feeds, health and revalidation endpoints

Run with ``ptflio`` (see ``cli``) or ``uvicorn ptflio.main:create_app --factory``.
"""

import time
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError as RequestSchemaError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ptflio.config import Settings, get_settings
from ptflio.container import ServiceContainer
from ptflio.core.exceptions import IntegrationError, PtflioError
from ptflio.core.logging import (
    clear_correlation_id,
    configure_logging,
    get_logger,
    set_correlation_id,
)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start and stop the services held by ``app.state.container``."""
    container: ServiceContainer = app.state.container
    settings = container.settings

    configure_logging(settings)
    app_logger = get_logger(__name__)

    await container.startup()
    app_logger.info(
        "application_started",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.app_env.value,
        primary_cache=container.cache.primary_connected,
    )
    try:
        yield
    finally:
        await container.shutdown()
        app_logger.info("application_stopped", app_name=settings.app_name)


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use; defaults to the container's, then to
            ``get_settings()``
        container: Pre-built services (tests); built from settings otherwise

    Returns:
        FastAPI: Application ready to be served
    """
    if settings is None:
        settings = container.settings if container is not None else get_settings()
    if container is None:
        container = ServiceContainer.from_settings(settings)

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Portfolio content backend. Aggregates YouTube videos, GitHub "
            "repositories and Instagram posts behind a two-tier cache."
        ),
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = container

    configure_middleware(app, settings)
    configure_exception_handlers(app)
    configure_routes(app)
    return app


# =============================================================================
# Middleware
# =============================================================================


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Register CORS and the request-context middleware."""
    # The portfolio frontend only reads
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_context_middleware)


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a request id to the request and log its outcome."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    set_correlation_id(request_id)

    request_logger = get_logger("ptflio.request")
    started = time.perf_counter()
    request_logger.debug(
        "request_received",
        method=request.method,
        path=request.url.path,
        query=str(request.query_params) or None,
    )

    try:
        response = await call_next(request)
    except Exception as exc:
        request_logger.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            duration_ms=_elapsed_ms(started),
            error=str(exc),
        )
        raise
    else:
        request_logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        clear_correlation_id()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


# =============================================================================
# Exception Handlers
# =============================================================================


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def configure_exception_handlers(app: FastAPI) -> None:
    """Render every failure in the ``ErrorResponse`` envelope."""
    error_logger = get_logger("ptflio.errors")

    @app.exception_handler(PtflioError)
    async def handle_ptflio_error(request: Request, exc: PtflioError) -> JSONResponse:
        log = error_logger.error if exc.status_code >= 500 else error_logger.warning
        service = exc.details.get("service") if isinstance(exc, IntegrationError) else None
        log(
            "request_error",
            error_code=exc.code,
            error_message=exc.message,
            status_code=exc.status_code,
            service=service,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(request_id=_request_id(request)),
        )

    @app.exception_handler(RequestSchemaError)
    async def handle_invalid_request(
        request: Request, exc: RequestSchemaError
    ) -> JSONResponse:
        error_logger.info("request_rejected", path=request.url.path)
        error: dict[str, Any] = {
            "code": "INVALID_PARAMETERS",
            "message": "Request parameters failed validation",
            "details": {"errors": _jsonable_errors(exc)},
        }
        if request_id := _request_id(request):
            error["request_id"] = request_id
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": error},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        error_logger.exception(
            "unhandled_exception",
            exception=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred",
                    "request_id": _request_id(request),
                }
            },
        )


def _jsonable_errors(exc: RequestSchemaError) -> list[dict[str, Any]]:
    return [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]


# =============================================================================
# Routes
# =============================================================================


def configure_routes(app: FastAPI) -> None:
    """Mount the probes, the index and the v1 API."""
    from ptflio.api.v1.router import router as v1_router

    @app.get("/health/live", tags=["Health"], summary="Liveness probe")
    async def liveness() -> dict[str, str]:
        """Answers as long as the process serves requests."""
        return {"status": "ok"}

    @app.get("/", tags=["Root"], summary="Service index")
    async def index(request: Request) -> dict[str, str]:
        settings: Settings = request.app.state.settings
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    app.include_router(v1_router, prefix="/api/v1")


def cli() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "ptflio.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    cli()
