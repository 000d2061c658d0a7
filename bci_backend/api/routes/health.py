"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bci_backend.api.dependencies import get_classifier
from bci_backend.core.config import settings
from bci_backend.core.logging import get_logger
from bci_backend.data.database import get_db
from bci_backend.ml.lda_classifier import LDAClassifier

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(
    db: Session = Depends(get_db),
    classifier: LDAClassifier = Depends(get_classifier)
):
    """
    System health check endpoint.

    Returns system status and basic diagnostics.
    """
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        logger.error("health_check_database_failed", error=str(exc))
        database = "unavailable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.env,
        "components": {
            "database": database,
            "classifier": "trained" if classifier.is_trained else "untrained"
        }
    }
