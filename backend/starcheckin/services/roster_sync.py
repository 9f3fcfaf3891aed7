import logging
from typing import Dict, List

from starcheckin.schemas import ROSTER_MERGE_FIELDS
from starcheckin.services.attendee_repository import AttendeeRepository
from starcheckin.services.credential_store import CredentialStore
from starcheckin.services.eventbrite_client import EventbriteClient
from starcheckin.services.webhook_normalizer import map_roster

logger = logging.getLogger(__name__)

# Status given to attendees first seen through a roster pull
ROSTER_STATUS = "updated"


class RosterSync:
    """Pull path: mirror an event roster into the repository without broadcasting."""

    def __init__(
        self,
        credential_store: CredentialStore,
        eventbrite: EventbriteClient,
        repository: AttendeeRepository,
    ):
        self.credential_store = credential_store
        self.eventbrite = eventbrite
        self.repository = repository

    def sync_event(self, event_id: str) -> List[Dict]:
        """
        Fetch the roster of one event and upsert every attendee.

        Returns the raw Eventbrite attendee objects.

        Raises:
            Unauthenticated: no credential saved (no upstream call is made)
            UpstreamAuthError, UpstreamUnavailable: the fetch failed
            RepositoryUnavailable: storing an attendee failed
        """
        credential = self.credential_store.require_credential()
        attendees = self.eventbrite.fetch_roster(event_id, credential)

        for update in map_roster(attendees):
            if not update.event_id:
                update = update.model_copy(update={"event_id": str(event_id)})
            update = update.model_copy(update={"status": ROSTER_STATUS})
            self.repository.upsert(update, ROSTER_MERGE_FIELDS)

        logger.info(f"✅ Synced {len(attendees)} attendees for event {event_id}")
        return attendees
