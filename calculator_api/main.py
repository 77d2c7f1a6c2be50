"""
Main Application - FastAPI wiring for the calculator API.
"""

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from calculator_api.api.auth_routes import router as auth_router
from calculator_api.api.dependencies import close_clients
from calculator_api.api.formula_routes import router as formula_router
from calculator_api.api.paypal_routes import router as paypal_router
from calculator_api.api.routes import router as service_router
from calculator_api.api.token_routes import router as token_router
from calculator_api.config import settings
from calculator_api.db.session import close_engine
from calculator_api.observability import (
    get_logger,
    log_context,
    metrics,
    setup_logging,
    setup_tracing,
)
from calculator_api.observability.tracing import instrument_fastapi

setup_logging()
logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Apply migrations on startup (if enabled); release HTTP clients and the engine on shutdown."""
    logger.info(
        "application_starting",
        version=settings.api_version,
        daily_allowance=settings.daily_token_allowance,
        admin_count=len(settings.admin_email_list),
        paypal_api_base=settings.paypal_api_base,
        tracing_enabled=settings.tracing_enabled,
    )

    if settings.run_migrations:
        from calculator_api.db.migration_runner import run_migrations

        run_migrations()

    yield

    logger.info("application_shutting_down")
    await close_clients()
    await close_engine()


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=settings.api_description,
    lifespan=lifespan,
)

setup_tracing()
instrument_fastapi(app)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with JSON-safe error details and log what was rejected."""
    errors = [
        {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            # ctx can hold exception instances
            **({"ctx": {k: str(v) for k, v in error["ctx"].items()}} if "ctx" in error else {}),
        }
        for error in exc.errors()
    ]
    logger.warning("request_validation_failed", path=request.url.path, errors=errors)
    return JSONResponse(status_code=422, content={"detail": errors})


def _route_label(request: Request) -> str:
    """Route template for metric labels, so /api/formulas/{formula_id} is one series."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


@app.middleware("http")
async def request_observability(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a request id to logs, time the request and record HTTP metrics."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    started = time.perf_counter()
    status_code = 500

    with log_context(request_id=request_id), metrics.http_requests_in_progress.track_inprogress():
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as exc:
            metrics.record_error(type(exc).__name__, "http_request")
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(exc),
                exc_info=True,
            )
            raise
        finally:
            duration = time.perf_counter() - started
            metrics.record_http_request(
                _route_label(request), request.method, status_code, duration
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_seconds=round(duration, 4),
        )
        return response


# Credentialed CORS cannot use a wildcard origin
_cors_origins = settings.cors_origin_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials="*" not in _cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Behind the TLS-terminating proxy; Secure cookies need the forwarded scheme
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips)

app.include_router(service_router)
app.include_router(auth_router)
app.include_router(token_router)
app.include_router(paypal_router)
app.include_router(formula_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Service identification."""
    return {
        "service": settings.api_title,
        "version": settings.api_version,
        "status": "running",
    }


@app.get("/metrics")
async def prometheus_metrics() -> Response:
    """Prometheus scrape endpoint."""
    if not settings.metrics_enabled:
        return PlainTextResponse("Metrics disabled", status_code=404)

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "calculator_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )
