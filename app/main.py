"""FastAPI application entrypoint. No business logic; only wiring, middleware and error rendering."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1 import router as v1_router
from app.core.config import Settings, get_settings
from app.core.errors import AuthError, Unauthenticated
from app.core.log_config import configure_logging
from app.services.auth import prime_dummy_hash
from app.services.session_store import RedisSessionStore, SessionStore, create_redis_client
from app.services.sessions import SessionManager

logger = logging.getLogger(__name__)


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render any AuthError as {"detail": message} with its status code."""
    headers = {"WWW-Authenticate": "Session"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


def create_app(
    settings: Settings | None = None,
    *,
    session_store: SessionStore | None = None,
) -> FastAPI:
    """
    Build the application. The session store defaults to Redis at REDIS_URL;
    tests pass their own store. No connection is opened until first use.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    owns_store = session_store is None
    if session_store is None:
        session_store = RedisSessionStore(
            create_redis_client(settings.REDIS_URL, socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC),
            key_prefix=settings.SESSION_KEY_PREFIX,
            operation_timeout=settings.SESSION_STORE_TIMEOUT_SEC,
        )
    session_manager = SessionManager(
        session_store,
        ttl_seconds=settings.SESSION_TTL_SECONDS,
        sliding_expiration=settings.SESSION_SLIDING_EXPIRATION,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await run_in_threadpool(prime_dummy_hash)
        yield
        await session_manager.aclose()
        if owns_store:
            await session_store.close()

    app = FastAPI(
        title="Accounts API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    # Session cookies need credentialed CORS, which cannot be combined with "*".
    if settings.APP_ENV == "dev":
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Accounts API"}

    return app


app = create_app()
