"""
api/main.py -- FastAPI application factory for the forum API.

create_app(settings) builds a fully wired application from one immutable
Settings value. Nothing here reads the environment: asgi.py and main.py
call get_settings() and pass the result in; tests pass their own Settings.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Request pipeline (outermost to innermost):
  1. log_requests           -- one access-log line per request
  2. TrustedHostMiddleware  -- rejects requests with unexpected Host headers
  3. OriginGateMiddleware   -- 403 for untrusted browser origins, answers preflights
  4. SlowAPIMiddleware      -- enforces per-route rate limits from api.limiter
  5. Route dependencies     -- get_identity() on every mutating route

Starlette runs the most recently added middleware first, so the
add_middleware() calls below are listed innermost-first.

App state (read-only after startup):
  settings, token_codec, origin_policy   -- built in create_app()
  account_store, forum_store             -- opened in lifespan, closed on shutdown
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.accounts import UPLOADS_PATH
from api.routes.v1.accounts import router as accounts_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.replies import router as replies_router
from api.routes.v1.topics import router as topics_router
from auth.origin import OriginGateMiddleware, OriginPolicy
from auth.store import AccountStore
from auth.tokens import TokenCodec
from core.config import Settings
from forum.store import ForumStore

VERSION = "0.1.0"

logger = logging.getLogger("forumapi.api")


def configure_logging(level: int = logging.INFO) -> None:
    """Install the process-wide log format. Called by entry points only."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores on startup and close them on shutdown.

    Both stores point at the same database URL; forum tables join users.
    """
    settings: Settings = app.state.settings
    logger.info("Forum API starting up")
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.state.account_store = AccountStore(settings.database_url)
    app.state.forum_store = ForumStore(settings.database_url)
    logger.info(
        "Stores initialized (token lifetime %ds, %d allowed origin(s))",
        settings.token_lifetime_seconds,
        len(app.state.origin_policy.allowed),
    )

    yield

    app.state.forum_store.close()
    app.state.account_store.close()
    logger.info("Forum API shutdown complete")


# ---------------------------------------------------------------------------
# Middleware and handlers
# ---------------------------------------------------------------------------


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


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc.detail),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


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


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a dict detail ({"code", "message"}).
    A dict detail is used directly as the error field; anything else (e.g.
    Starlette's own 404/405) is wrapped as http_<status>.
    """
    if isinstance(exc.detail, dict):
        error = ErrorDetail(**exc.detail)
    else:
        error = ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=error).model_dump(),
        headers=getattr(exc, "headers", None),
    )


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
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings) -> FastAPI:
    """Build the forum API around one immutable Settings value."""
    app = FastAPI(
        title="Forum API",
        description="Topics, replies, and accounts for a discussion forum.",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.token_codec = TokenCodec(settings.secret_key, settings.token_lifetime_seconds)
    app.state.origin_policy = OriginPolicy(settings.origin_allow_list)

    # SlowAPI looks for app.state.limiter by convention.
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter

    # Innermost first -- see the module docstring.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(OriginGateMiddleware, policy=app.state.origin_policy)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.host_allow_list)
    app.middleware("http")(log_requests)

    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
    app.include_router(topics_router, prefix="/api/v1", tags=["Topics"])
    app.include_router(replies_router, prefix="/api/v1", tags=["Replies"])
    app.include_router(accounts_router, prefix="/api/v1", tags=["Accounts"])

    # check_dir=False: lifespan creates upload_dir before the first request.
    app.mount(UPLOADS_PATH, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    @app.get("/api/v1/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return API liveness, version, and database reachability."""
        db_ok = request.app.state.account_store.ping()
        return HealthResponse(
            version=VERSION,
            components={"app": "ok", "database": "ok" if db_ok else "error"},
        )

    return app
