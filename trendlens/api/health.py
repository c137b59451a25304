"""
Health check endpoints
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trendlens.api.deps import get_db, get_settings
from trendlens.config.settings import Settings
from trendlens.utils.helpers import utc_now_iso

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(config: Settings = Depends(get_settings)):
    """Simple API health check."""
    return {
        "status": "healthy",
        "timestamp": utc_now_iso(),
        "service": config.APP_NAME,
        "version": config.APP_VERSION,
    }


@router.get("/health/db")
def database_health(db: Session = Depends(get_db)):
    """Database health check."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error(f"Database health check failed: {exc}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": "disconnected",
                "timestamp": utc_now_iso(),
            },
        )

    return {
        "status": "healthy",
        "database": "connected",
        "timestamp": utc_now_iso(),
    }
