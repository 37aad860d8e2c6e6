import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.rate_limit import limiter
from app.database import get_db
from app.routers import auth, children, drawings, families, invitations, llm, notes, notion, uploads

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data cleanup background task
# ---------------------------------------------------------------------------
async def _cleanup_loop() -> None:
    """Delete stale data daily at 03:00 UTC.

    - OAuth states past their expiry (abandoned Notion connects)
    - Refresh tokens that are expired or revoked

    Invitations are left alone: they only become expired on an
    acceptance attempt.
    """
    from app.database import async_session
    from app.models.notion import OAuthState
    from app.models.user import RefreshToken

    while True:
        # Sleep until 03:00 UTC today (or tomorrow if already past)
        now = datetime.now(timezone.utc)
        target = now.replace(hour=3, minute=0, second=0, microsecond=0)
        if target <= now:
            target += timedelta(days=1)
        await asyncio.sleep((target - now).total_seconds())

        try:
            now = datetime.now(timezone.utc)
            async with async_session() as db:
                result_states = await db.execute(
                    delete(OAuthState).where(OAuthState.expires_at < now)
                )
                result_tokens = await db.execute(
                    delete(RefreshToken).where(
                        or_(RefreshToken.revoked.is_(True), RefreshToken.expires_at < now)
                    )
                )
                await db.commit()
                logger.info(
                    "Cleanup: %d OAuth states, %d refresh tokens removed",
                    result_states.rowcount,
                    result_tokens.rowcount,
                )
        except Exception:
            logger.exception("Cleanup error")


# ---------------------------------------------------------------------------
# Lifespan context manager
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: runs on startup and shutdown."""
    logger.info("Family Journal API started")
    cleanup_task = asyncio.create_task(_cleanup_loop())
    yield
    cleanup_task.cancel()
    from app.core.redis_client import close_redis
    await close_redis()
    logger.info("Family Journal API shutting down")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)


MAX_BODY_SIZE = 12 * 1024 * 1024  # 12 MB (slightly above 10 MB upload limit)


# -- Middleware ---------------------------------------------------------------
@app.middleware("http")
async def limit_request_body(request: Request, call_next):
    """Reject requests with Content-Length exceeding the limit."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > MAX_BODY_SIZE:
        return JSONResponse(
            status_code=413,
            content={"detail": "Request body too large"},
        )
    return await call_next(request)


@app.middleware("http")
async def fix_redirect_scheme(request: Request, call_next):
    """Ensure redirects use https when behind a TLS-terminating reverse proxy."""
    if request.headers.get("x-forwarded-proto") == "https":
        request.scope["scheme"] = "https"
    return await call_next(request)


app.add_middleware(GZipMiddleware, minimum_size=1000)
# Bearer tokens, no cookies: a wildcard origin without credentials keeps the
# header a literal "*".
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# -- Rate limiting ------------------------------------------------------------
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# -- Errors -------------------------------------------------------------------
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures and answer with a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check with DB and Redis connectivity verification."""
    from app.core.redis_client import get_redis

    checks: dict[str, str] = {"db": "ok", "redis": "ok"}

    try:
        await db.execute(select(1))
    except Exception:
        checks["db"] = "error"

    try:
        redis = await get_redis()
        if redis is None:
            checks["redis"] = "unavailable"
        else:
            await redis.ping()
    except Exception:
        checks["redis"] = "error"

    # "unavailable" = optional service not configured; only "error" = degraded
    degraded = any(v == "error" for v in checks.values())
    return {"status": "degraded" if degraded else "ok", "app": settings.APP_NAME, **checks}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
app.include_router(families.router, prefix=settings.API_V1_PREFIX)
app.include_router(invitations.router, prefix=settings.API_V1_PREFIX)
app.include_router(children.router, prefix=settings.API_V1_PREFIX)
app.include_router(notes.router, prefix=settings.API_V1_PREFIX)
app.include_router(drawings.router, prefix=settings.API_V1_PREFIX)
app.include_router(uploads.router, prefix=settings.API_V1_PREFIX)
app.include_router(notion.router, prefix=settings.API_V1_PREFIX)
app.include_router(llm.router, prefix=settings.API_V1_PREFIX)
