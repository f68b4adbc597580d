"""Health check and client configuration endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.db.session import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    """
    Liveness check.

    Returns:
        A simple status object indicating the process is up
    """
    return {"ok": True}


@router.get("/readyz")
async def readiness_check(db: AsyncSession = Depends(get_session)):
    """
    Readiness check; succeeds only when the database answers.

    Returns:
        ``{"ok": true}`` or a 503 with ``{"ok": false}``
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Readiness check failed: database unavailable", exc_info=True)
        return JSONResponse(status_code=503, content={"ok": False})
    return {"ok": True}


@router.get("/api/config")
async def client_config(settings: Settings = Depends(get_settings)):
    """
    Feature flags the client needs before rendering.

    Returns:
        ``{"uploadsEnabled": bool}``
    """
    return {"uploadsEnabled": settings.uploads_enabled}
