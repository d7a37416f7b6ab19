"""
Health check endpoint.
"""
from datetime import datetime
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from planner.config import settings
from planner.database import get_db, ping
from planner.models.schemas import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Report the database connection and which optional collaborators are set up.

    The service is "degraded" when the database does not answer; a missing
    Gemini key or Word template URL only disables the matching export.
    """
    db_ok = await ping(db)
    if not db_ok:
        logger.warning("health_check: database unreachable")

    return HealthCheckResponse(
        status="healthy" if db_ok else "degraded",
        database="ok" if db_ok else "error",
        ai="enabled" if settings.ai_enabled else "disabled",
        word_template="configured" if settings.WORD_TEMPLATE_URL else "missing",
        timestamp=datetime.utcnow(),
    )
