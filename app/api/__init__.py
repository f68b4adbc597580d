"""API routers for the video sharing service."""

from app.api.routes_comments import router as comments_router
from app.api.routes_health import router as health_router
from app.api.routes_users import router as users_router
from app.api.routes_videos import router as videos_router

__all__ = [
    "health_router",
    "videos_router",
    "comments_router",
    "users_router",
]
