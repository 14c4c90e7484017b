"""
Liveness and readiness endpoints.
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import settings
from app.core.datetime_utils import utc_now
from app.core.error_responses import ErrorMessages
from app.models import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Liveness check. Does not touch the database.
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "sessionQuestionCount": settings.SESSION_QUESTION_COUNT,
    }


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness check: the service is ready once the database answers.

    Returns 503 with ``{"error": ...}`` when the database is unreachable.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error(f"Readiness check failed: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "error": ErrorMessages.DATABASE_ERROR},
        )
    return {"status": "ready", "database": "ok"}


@router.get("/ping")
async def ping():
    return {"message": "pong"}
