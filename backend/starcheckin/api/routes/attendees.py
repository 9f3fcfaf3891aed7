import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from starcheckin.api.deps import get_attendee_repository, get_roster_sync
from starcheckin.core.exceptions import RepositoryUnavailable, Unauthenticated, UpstreamError
from starcheckin.schemas import AttendeeResult
from starcheckin.services.attendee_repository import AttendeeRepository
from starcheckin.services.roster_sync import RosterSync

router = APIRouter()
logger = logging.getLogger(__name__)

# ==============================================================================
# PULL: Eventbrite roster -> local mirror
# ==============================================================================
@router.get("/attendees/{event_id}")
def fetch_attendees(event_id: str, sync: RosterSync = Depends(get_roster_sync)):
    """
    Fetch the event roster from Eventbrite, store every attendee locally and
    return the Eventbrite attendee objects. Nothing is broadcast.
    """
    try:
        return sync.sync_event(event_id)
    except Unauthenticated as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UpstreamError as e:
        logger.error(f"❌ Roster fetch failed for event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch attendees: {e}"
        )
    except RepositoryUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store attendees: {e}"
        )


# ==============================================================================
# LOCAL SNAPSHOT
# ==============================================================================
@router.get("/local_attendees", response_model=List[AttendeeResult])
def local_attendees(
    event_id: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    repository: AttendeeRepository = Depends(get_attendee_repository),
):
    """
    Every attendee stored locally.
    Optional: ?event_id=123 and/or ?status=checked_in to narrow the list.
    """
    try:
        return repository.get_all(event_id=event_id, status=status_filter)
    except RepositoryUnavailable as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/local_attendees/{attendee_id}", response_model=AttendeeResult)
def local_attendee(
    attendee_id: str,
    repository: AttendeeRepository = Depends(get_attendee_repository),
):
    try:
        attendee = repository.get_by_id(attendee_id)
    except RepositoryUnavailable as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if attendee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendee {attendee_id} not found"
        )
    return attendee
