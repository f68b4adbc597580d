"""Video sharing API - Main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from app.api import comments_router, health_router, users_router, videos_router
from app.auth.router import TOKEN_HEADER
from app.auth.router import router as auth_router
from app.config import get_settings
from app.db.session import dispose_engine, init_models
from app.errors import register_exception_handlers
from app.limits import limiter
from app.logging import setup_logging

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking attacks
        response.headers["X-Frame-Options"] = "DENY"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup and release the connection pool on shutdown."""
    await init_models()
    logger.info("Database ready")
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Video Sharing API",
        description="Channels, videos, comments, likes and subscriptions",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    register_exception_handlers(app)

    # Add security headers middleware
    app.add_middleware(SecurityHeadersMiddleware)

    # The token travels in a custom header, so it must be allowed explicitly
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", TOKEN_HEADER],
    )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(videos_router)
    app.include_router(comments_router)
    app.include_router(users_router)

    return app


app = create_app()


def main():
    """Entry point for running the application."""
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().env == "dev",
    )


if __name__ == "__main__":
    main()
