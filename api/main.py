"""
api/main.py -- FastAPI application entry point for OfficeDesk.

Serves the JSON API consumed by the office's browser client: authentication,
user administration, clients, documents, the legal document editor, postal
code / region lookups and the audit trail.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan handles startup (stores, auth service, admin seed, purge task) and
shutdown (cancel purge task, dispose DB engines) symmetrically.

Settings are loaded at import time: a missing or short SECRET_KEY aborts
startup before the app object exists.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import public_router as login_router
from api.routes.auth import router as session_router
from api.routes.clients import router as clients_router
from api.routes.dashboard import router as dashboard_router
from api.routes.documents import router as documents_router
from api.routes.legal_documents import router as legal_documents_router
from api.routes.reference import router as reference_router
from api.routes.statuses import admin_router as statuses_admin_router
from api.routes.statuses import router as statuses_router
from api.routes.users import router as users_router
from audit.store import AuditStore
from auth.dependencies import require_admin
from auth.errors import AuthError, PasswordChangeRequired
from auth.models import User
from auth.passwords import BcryptHasher
from auth.service import AuthService, seed_admin
from auth.sessions import SqlSessionStore
from auth.store import UserStore
from cache.store import TTLCache
from core.config import get_settings
from core.fetcher import LookupTimeout, UpstreamError
from core.lookup import ReferenceDataService
from records.files import FileStorage
from records.store import RecordsStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("officedesk.api")

settings = get_settings()
if settings.debug:
    logging.getLogger("officedesk").setLevel(logging.DEBUG)

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------

_PURGE_INTERVAL_SECONDS = 60 * 60


async def _purge_loop(app: FastAPI) -> None:
    """Purge expired sessions and reference-cache entries every hour.

    Runs as a background asyncio task started in lifespan startup. Expired
    sessions are already rejected on read; this only reclaims rows.
    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(_PURGE_INTERVAL_SECONDS)
        removed = await asyncio.to_thread(app.state.sessions.purge_expired)
        app.state.reference.cache.purge_expired()
        if removed:
            logger.info("Purged %d expired session(s)", removed)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Stores first -- every store creates its tables on construction.
      2. AuthService second -- composes the user, session and audit stores.
      3. Admin seed -- needs the user store and the hasher.
      4. Purge task last -- references app.state.sessions and app.state.reference.
    """
    # Startup
    logger.info("OfficeDesk API starting up")
    db_url = settings.database_url
    app.state.users = UserStore(db_url)
    app.state.sessions = SqlSessionStore(db_url, ttl=settings.session_ttl_seconds)
    app.state.audit = AuditStore(db_url)
    app.state.records = RecordsStore(db_url)
    app.state.files = FileStorage(settings.upload_dir)
    app.state.reference = ReferenceDataService(
        TTLCache(ttl=settings.reference_cache_ttl_seconds),
        timeout=settings.reference_timeout_seconds,
    )
    hasher = BcryptHasher(rounds=settings.bcrypt_rounds)
    app.state.auth = AuthService(
        app.state.users,
        app.state.sessions,
        app.state.audit,
        hasher,
        settings.secret_key,
        revoke_sessions_on_disable=settings.revoke_sessions_on_disable,
    )

    if settings.admin_password:
        seed_admin(
            app.state.users,
            hasher,
            settings.admin_username,
            settings.admin_password,
            settings.admin_email,
            settings.admin_name,
        )
    elif not app.state.users.has_users():
        logger.warning("No users exist -- set ADMIN_PASSWORD or run `python main.py create-admin`")

    logger.info(
        "Auth initialized (session_ttl=%ss, revoke_sessions_on_disable=%s)",
        settings.session_ttl_seconds,
        settings.revoke_sessions_on_disable,
    )
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    # Shutdown
    app.state.purge_task.cancel()
    app.state.users.close()
    app.state.sessions.close()
    app.state.audit.close()
    app.state.records.close()
    logger.info("OfficeDesk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="OfficeDesk API",
    description="Client, document and user management for a small law office.",
    version=VERSION,
    lifespan=lifespan,
    # Disable built-in /docs and /redoc so we can add auth protection.
    # Auth-protected equivalents are registered below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    # The session travels in a cookie, so credentials must be allowed
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s 500 %.1fms %s",
            request.method,
            request.url.path,
            ms,
            request.client.host if request.client else "unknown",
        )
        raise
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
#
# Each router carries its own gate list (auth/dependencies.py). Registration
# order only matters for overlapping paths.
# ---------------------------------------------------------------------------

app.include_router(login_router, prefix="/api", tags=["Auth"])
app.include_router(session_router, prefix="/api", tags=["Auth"])
app.include_router(users_router, prefix="/api", tags=["Users"])
app.include_router(dashboard_router, prefix="/api", tags=["Dashboard"])
app.include_router(clients_router, prefix="/api", tags=["Clients"])
app.include_router(documents_router, prefix="/api", tags=["Documents"])
app.include_router(statuses_router, prefix="/api", tags=["Document statuses"])
app.include_router(statuses_admin_router, prefix="/api", tags=["Document statuses"])
app.include_router(legal_documents_router, prefix="/api", tags=["Legal documents"])
app.include_router(reference_router, prefix="/api", tags=["Reference data"])


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(user: User = Depends(require_admin)):
    """Swagger UI -- admins only."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="OfficeDesk API")


@app.get("/redoc", include_in_schema=False)
async def redoc(user: User = Depends(require_admin)):
    """ReDoc UI -- admins only."""
    return get_redoc_html(openapi_url="/openapi.json", title="OfficeDesk API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 listing each invalid field and its message."""
    fields = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return _error(400, "validation_error", "Request validation failed.", {"fields": fields})


@app.exception_handler(PasswordChangeRequired)
async def password_change_required_handler(request: Request, exc: PasswordChangeRequired) -> JSONResponse:
    """403 for first-access users. requiresPasswordChange tells the client where to go."""
    return JSONResponse(
        status_code=403,
        content={
            "requiresPasswordChange": True,
            "message": exc.message,
            "error": ErrorDetail(code=exc.code, message=exc.message).model_dump(),
        },
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Fallback for AuthError subclasses not translated by a route."""
    return _error(401, exc.code, exc.message)


@app.exception_handler(LookupTimeout)
async def lookup_timeout_handler(request: Request, exc: LookupTimeout) -> JSONResponse:
    return _error(504, "upstream_timeout", "The reference service did not respond in time.")


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    return _error(502, "upstream_error", "The reference service is unavailable.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with detail={"code", "message"}.
    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it -- str(dict) produces a Python repr,
    not JSON.
    """
    if isinstance(exc.detail, dict):
        response = JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    else:
        response = _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    Audit write failures end up here as well.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No gate and no rate limit -- health checks must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
