from fastapi import Depends

from starcheckin.db.session import SessionLocal
from starcheckin.services.attendee_repository import AttendeeRepository
from starcheckin.services.broadcaster import Broadcaster
from starcheckin.services.credential_store import CredentialStore
from starcheckin.services.eventbrite_client import EventbriteClient
from starcheckin.services.reconciliation import ReconciliationEngine, WebhookProcessor
from starcheckin.services.roster_sync import RosterSync
from starcheckin.services.webhook_normalizer import WebhookNormalizer

# Singleton instances
credential_store = CredentialStore(SessionLocal)
attendee_repository = AttendeeRepository(SessionLocal)
eventbrite_client = EventbriteClient()
broadcaster = Broadcaster()


def get_credential_store() -> CredentialStore:
    return credential_store


def get_attendee_repository() -> AttendeeRepository:
    return attendee_repository


def get_eventbrite_client() -> EventbriteClient:
    return eventbrite_client


def get_broadcaster() -> Broadcaster:
    return broadcaster


def get_roster_sync(
    store: CredentialStore = Depends(get_credential_store),
    eventbrite: EventbriteClient = Depends(get_eventbrite_client),
    repository: AttendeeRepository = Depends(get_attendee_repository),
) -> RosterSync:
    return RosterSync(store, eventbrite, repository)


def get_webhook_processor(
    store: CredentialStore = Depends(get_credential_store),
    eventbrite: EventbriteClient = Depends(get_eventbrite_client),
    repository: AttendeeRepository = Depends(get_attendee_repository),
    live: Broadcaster = Depends(get_broadcaster),
) -> WebhookProcessor:
    return WebhookProcessor(
        WebhookNormalizer(store, eventbrite),
        ReconciliationEngine(repository, live),
    )
