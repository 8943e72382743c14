"""FastAPI application entry point.

Store Directory API - local business listings, reviews and discovery.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from storedir.routes import api_router
from storedir.routes.deps import error_response
from storedir.services.errors import StoreDirError
from storedir.settings import check_session_secret, get_settings
from storedir.stores.postgres import init_db, close_db, ping_db
from storedir.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    check_session_secret(get_settings())

    # Database is required for every endpoint except /health
    try:
        await init_db()
        await ping_db()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Redis only backs caches; the API works without it
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")
        await close_redis()

    yield

    # Shutdown
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Local store directory: listings, reviews, hearts and discovery",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
    )

    @app.exception_handler(StoreDirError)
    async def domain_exception_handler(request: Request, exc: StoreDirError) -> JSONResponse:
        """Domain failures in the structured error format."""
        return error_response(exc.status_code, exc.code, exc.message, exc.detail)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(
            500,
            "INTERNAL_ERROR",
            str(exc) if settings.debug else "Internal server error",
        )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storedir.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
