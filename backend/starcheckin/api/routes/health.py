from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starcheckin.api.deps import get_attendee_repository, get_broadcaster, get_credential_store
from starcheckin.core.exceptions import RepositoryUnavailable
from starcheckin.db.session import get_db
from starcheckin.services.attendee_repository import AttendeeRepository
from starcheckin.services.broadcaster import Broadcaster
from starcheckin.services.credential_store import CredentialStore
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    repository: AttendeeRepository = Depends(get_attendee_repository),
):
    """Health check endpoint"""
    try:
        db.execute(text("SELECT 1"))
        authorized = store.get_current_credential() is not None

        return {
            "status": "healthy",
            "database": "connected",
            "authorized": authorized,
            "attendees": repository.count(),
            "subscribers": broadcaster.subscriber_count,
            "service": "starcheckin-backend"
        }
    except (SQLAlchemyError, RepositoryUnavailable) as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "error": str(e)
        }
