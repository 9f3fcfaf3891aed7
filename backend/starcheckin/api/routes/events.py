import logging

from fastapi import APIRouter, Depends, HTTPException, status

from starcheckin.api.deps import get_credential_store, get_eventbrite_client
from starcheckin.core.exceptions import RepositoryUnavailable, Unauthenticated, UpstreamError
from starcheckin.schemas import EventListResponse
from starcheckin.services.credential_store import CredentialStore
from starcheckin.services.eventbrite_client import EventbriteClient

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/events", response_model=EventListResponse)
def list_events(
    store: CredentialStore = Depends(get_credential_store),
    eventbrite: EventbriteClient = Depends(get_eventbrite_client),
):
    """Events visible under the saved Eventbrite credential"""
    try:
        credential = store.require_credential()
        events = eventbrite.list_events(credential)
    except Unauthenticated as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except (UpstreamError, RepositoryUnavailable) as e:
        logger.error(f"❌ Event listing failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch events: {e}"
        )

    return {"events": events}
