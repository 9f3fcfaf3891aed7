"""
Turns Eventbrite webhook notifications into canonical attendee updates.

Eventbrite delivers terse notifications::

    {"api_url": "https://www.eventbriteapi.com/v3/events/1/attendees/2/",
     "config": {"action": "barcode.checked_in", "webhook_id": "9", ...}}

The shape is resolved once into a NotificationKind:

* HYDRATE   - ``api_url`` present, the attendee is fetched from Eventbrite
* INLINE    - ``api_url_object`` carries the attendee itself
* TEST      - no locator but a ``config`` block (dashboard pings, manual tests)
* MALFORMED - nothing usable, the notification is ignored
"""
import enum
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from starcheckin.core.exceptions import MalformedNotification
from starcheckin.schemas import AttendeeUpdate
from starcheckin.services.credential_store import CredentialStore
from starcheckin.services.eventbrite_client import EventbriteClient

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "updated"
UNKNOWN_ATTENDEE_ID = "unknown_id"

TEST_ATTENDEE_ID = "test_attendee"
TEST_ATTENDEE_NAME = "Test Attendee"
TEST_ATTENDEE_EMAIL = "test@example.com"

CHECKED_IN_TOKENS = frozenset({"check_in", "checked_in", "barcode.checked_in", "checked in"})
CHECKED_OUT_TOKENS = frozenset({
    "check_out", "checked_out", "barcode.un_checked_in", "not_checked_in", "not checked in",
})


class NotificationKind(enum.Enum):
    HYDRATE = "hydrate"
    INLINE = "inline"
    TEST = "test"
    MALFORMED = "malformed"


def classify(payload: Any) -> NotificationKind:
    if not isinstance(payload, dict):
        return NotificationKind.MALFORMED

    if isinstance(payload.get("api_url"), str) and payload["api_url"].strip():
        return NotificationKind.HYDRATE

    inline = payload.get("api_url_object")
    if isinstance(inline, dict) and inline.get("id"):
        return NotificationKind.INLINE

    config = payload.get("config")
    if isinstance(config, dict) and config:
        return NotificationKind.TEST

    return NotificationKind.MALFORMED


def extract_action(payload: Dict) -> str:
    config = payload.get("config")
    if isinstance(config, dict):
        action = config.get("action")
        if isinstance(action, str) and action.strip():
            return action.strip()
    return DEFAULT_ACTION


def derive_checked_in(status: Any) -> Optional[bool]:
    """Map a status or action token to a checked-in flag, None if it says nothing."""
    if not isinstance(status, str) or not status:
        return None
    token = status.strip().lower()
    if token in CHECKED_IN_TOKENS:
        return True
    if token in CHECKED_OUT_TOKENS:
        return False
    return None


def map_answers(answers: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(answers, list):
        return None

    mapped = {}
    for item in answers:
        if not isinstance(item, dict):
            continue
        question = item.get("question") or item.get("question_id")
        if question:
            mapped[str(question)] = item.get("answer")
    return mapped or None


def _text(value: Any) -> Optional[str]:
    # Anything that is not a non-empty string counts as absent
    if isinstance(value, str) and value.strip():
        return value
    return None


def _identifier(value: Any, field: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise MalformedNotification(f"Attendee {field} is not a string or number: {value!r}")
    return str(value)


def from_attendee_resource(
    resource: Any,
    action: Optional[str] = None,
    status_from_action: bool = False,
) -> AttendeeUpdate:
    """
    Map an Eventbrite attendee object (roster entry, hydrated or inline
    notification) to an AttendeeUpdate.

    Missing fields stay None so they never overwrite stored values. Fields
    of the wrong type are treated as missing; an unusable id raises
    MalformedNotification.
    """
    if not isinstance(resource, dict):
        raise MalformedNotification(f"Attendee resource is not an object: {type(resource).__name__}")

    attendee_id = _identifier(resource.get("id"), "id")
    if not attendee_id:
        # Known hazard: every id-less attendee collapses into one record
        logger.warning(f"⚠️ Attendee resource without id, storing as '{UNKNOWN_ATTENDEE_ID}'")
        attendee_id = UNKNOWN_ATTENDEE_ID

    profile = resource.get("profile") if isinstance(resource.get("profile"), dict) else {}

    if status_from_action:
        status = action
    else:
        status = _text(resource.get("status")) or action
    checked_in = resource.get("checked_in")
    if not isinstance(checked_in, bool):
        checked_in = derive_checked_in(status)
    if checked_in is None and action:
        checked_in = derive_checked_in(action)

    try:
        return AttendeeUpdate(
            id=attendee_id,
            name=_text(profile.get("name")) or _text(resource.get("name")),
            email=_text(profile.get("email")) or _text(resource.get("email")),
            status=status,
            checked_in=checked_in,
            answers=map_answers(resource.get("answers")),
            event_id=_identifier(resource.get("event_id"), "event_id"),
        )
    except ValidationError as e:
        raise MalformedNotification(f"Attendee {attendee_id} could not be mapped: {e}") from e


def placeholder_update(action: str) -> AttendeeUpdate:
    """Fixed record used to prove the webhook path works end to end."""
    return AttendeeUpdate(
        id=TEST_ATTENDEE_ID,
        name=TEST_ATTENDEE_NAME,
        email=TEST_ATTENDEE_EMAIL,
        status=action,
        checked_in=derive_checked_in(action),
    )


class WebhookNormalizer:
    def __init__(self, credential_store: CredentialStore, eventbrite: EventbriteClient):
        self.credential_store = credential_store
        self.eventbrite = eventbrite

    def normalize(self, payload: Any) -> AttendeeUpdate:
        """
        Build exactly one AttendeeUpdate from a notification.

        Raises:
            MalformedNotification: nothing identifies an attendee
            Unauthenticated: hydration needed but no credential is saved
            UpstreamAuthError, UpstreamUnavailable: hydration failed
        """
        kind = classify(payload)

        if kind is NotificationKind.MALFORMED:
            raise MalformedNotification("Notification has no locator, attendee or config")

        action = extract_action(payload)

        if kind is NotificationKind.HYDRATE:
            credential = self.credential_store.require_credential()
            resource = self.eventbrite.fetch_by_reference(payload["api_url"].strip(), credential)
            return from_attendee_resource(resource, action)

        if kind is NotificationKind.INLINE:
            # Inline objects take their status from the notification action
            return from_attendee_resource(payload["api_url_object"], action, status_from_action=True)

        logger.info(f"Test notification received (action={action}), using placeholder attendee")
        return placeholder_update(action)


def map_roster(attendees: List[Dict]) -> List[AttendeeUpdate]:
    """Map roster entries, skipping the ones that cannot be mapped."""
    updates = []
    for entry in attendees:
        try:
            updates.append(from_attendee_resource(entry))
        except MalformedNotification as e:
            logger.warning(f"⚠️ Skipping roster entry: {e}")
    return updates
