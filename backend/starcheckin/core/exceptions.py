"""Error taxonomy shared by the services and the routes that translate it."""
from typing import Optional


class CheckinSyncError(Exception):
    """Base class for every failure raised by the sync services."""


class Unauthenticated(CheckinSyncError):
    """No active upstream credential when one is required."""

    def __init__(self, message: str = "No Eventbrite credential saved. Authorize first."):
        super().__init__(message)


class UpstreamError(CheckinSyncError):
    """Base class for failures talking to the Eventbrite API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamAuthError(UpstreamError):
    """Eventbrite rejected the credential (re-authorization needed)."""


class UpstreamUnavailable(UpstreamError):
    """Eventbrite could not be reached or answered with a server error."""


class RepositoryUnavailable(CheckinSyncError):
    """Local storage failed to read or write."""


class MalformedNotification(CheckinSyncError):
    """Webhook payload carries nothing that identifies an attendee."""
