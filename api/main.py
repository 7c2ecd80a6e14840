"""
api/main.py -- FastAPI application entry point for ClefAuth.

Hosts the Clef strategy: registers it at startup from core.config settings and
exposes the Clef callback (GET /login), the logout webhook (POST /logout), the
state issuance endpoint and a health check.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. log_requests       -- one access log line per request with latency
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter

Lifespan registers the Clef strategy on startup and closes its client on
shutdown. A strategy that fails validation stops the app from starting.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.clef import router as clef_router
from api.routes.v1.auth import router as auth_router
from auth.models import CookieOptions
from auth.scheme import StrategyOptions, register
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("clefauth.api")


# ---------------------------------------------------------------------------
# Strategy options from settings
# ---------------------------------------------------------------------------


def strategy_options(settings: Settings) -> StrategyOptions:
    """Build the Clef StrategyOptions from environment settings.

    SECRET_KEY doubles as the state cookie signing password. Raises
    pydantic.ValidationError when CLEF_APP_ID or CLEF_APP_SECRET is missing.
    """
    return StrategyOptions(
        app_id=settings.clef_app_id,
        app_secret=settings.clef_app_secret,
        cookie_name=settings.clef_cookie_name,
        cookie_options=CookieOptions(
            password=settings.secret_key,
            secure=settings.secure_cookies,
            max_age=settings.state_cookie_max_age,
        ),
        client_options={"api_base": settings.clef_api_base},
        exchange_timeout=settings.clef_exchange_timeout,
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Register the Clef strategy for the lifetime of the server.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. register() validates the options first, so a misconfigured
    strategy raises here and the server never accepts a request.
    """
    logger.info("ClefAuth API starting up")
    scheme = register(app, strategy_options(get_settings()))

    yield

    close = getattr(scheme.client, "close", None)
    if callable(close):
        close()
    logger.info("ClefAuth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ClefAuth API",
    description="Clef passwordless login strategy for FastAPI.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(SlowAPIMiddleware)

# Attach the shared limiter to app.state so SlowAPIMiddleware can locate it.
# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time is captured around call_next so every response is
# logged with its latency.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

# Clef callback and webhook live at the root -- those URLs are configured in
# the Clef application dashboard.
app.include_router(clef_router, tags=["Clef"])
app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    The Clef dependencies raise HTTPException with a {"code", "message"} dict
    as detail. When detail is already a structured dict, use it directly as
    the error field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return API liveness, current version and whether Clef is registered."""
    return HealthResponse(
        version=__version__,
        clef_registered=getattr(request.app.state, "clef", None) is not None,
    )
