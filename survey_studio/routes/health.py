"""Health check endpoint for monitoring and deployment verification."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from survey_studio.config import get_settings
from survey_studio.models.database import get_db
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Report whether the service and its database are reachable.

    Returns 503 when the database does not answer.

    Example response:
        {
            "status": "healthy",
            "database": "connected",
            "commit": "local"
        }
    """
    commit = get_settings().git_commit_sha
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "unreachable", "commit": commit}
        )

    logger.debug("Health check passed")
    return {"status": "healthy", "database": "connected", "commit": commit}
