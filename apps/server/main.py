"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware

from forum_sso.api.routes import connections_router, entry_router, sso_router
from forum_sso.api.routes.entry import limiter
from forum_sso.core.config import settings
from forum_sso.db.migrations import run_migrations
from forum_sso.db.session import verify_connection
from forum_sso.integrations.oauth.exceptions import OAuth2Error


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    try:
        logger.info("Startup: verifying database connection")
        verify_connection()
        logger.info("Startup: database connection verified")

        logger.info("Startup: running database migrations")
        run_migrations()
        logger.info("Startup: migrations completed")
    except Exception:
        logger.error("Startup failure", exc_info=True)
        raise

    if settings.sso_debug:
        logger.warning("Startup: SSO debug logging is enabled")

    yield

    logger.info("Shutdown: complete")


app = FastAPI(lifespan=lifespan)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# The session cookie carries the read-once stash across the connect redirect.
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret_key)


@app.exception_handler(OAuth2Error)
async def oauth2_error_handler(request: Request, exc: OAuth2Error) -> JSONResponse:
    """Render SSO failures as an application error for the requesting user."""

    logger.warning(
        "SSO failure (%s) for provider %s: %s",
        type(exc).__name__,
        exc.provider_key,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.http_status,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "provider": exc.provider_key,
        },
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(entry_router, prefix="/entry")
app.include_router(sso_router, prefix="/api/v1/sso")
app.include_router(connections_router, prefix="/api/v1/profile/connections")
