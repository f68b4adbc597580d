"""Authentication module for the video sharing API."""

from app.auth.router import require_user, router

__all__ = ["router", "require_user"]
