"""Eventbrite API client."""
import logging
from typing import Dict, List, Optional
from urllib.parse import urlparse

import requests

from starcheckin.core.config import settings
from starcheckin.core.exceptions import (
    MalformedNotification,
    UpstreamAuthError,
    UpstreamUnavailable,
)
from starcheckin.schemas import Credential

logger = logging.getLogger(__name__)


class EventbriteClient:
    """
    Thin wrapper over the Eventbrite REST API.

    Every call is authenticated with the credential handed in by the caller;
    the client never touches the local database.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_pages: Optional[int] = None,
    ):
        self.base_url = (base_url or settings.EVENTBRITE_API_URL).rstrip("/")
        self.token_url = token_url or settings.OAUTH_TOKEN_URL
        self.timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS
        self.max_pages = max_pages or settings.ROSTER_MAX_PAGES
        self.session = requests.Session()

    def exchange_code(self, code: str) -> Dict:
        """
        Trade an OAuth authorization code for a token payload.

        Raises:
            UpstreamAuthError: Eventbrite refused the code or returned no token
            UpstreamUnavailable: Eventbrite could not be reached
        """
        data = {
            "client_id": settings.CLIENT_ID,
            "client_secret": settings.CLIENT_SECRET,
            "code": code,
            "redirect_uri": settings.OAUTH_REDIRECT_URI,
            "grant_type": "authorization_code",
        }

        try:
            response = self.session.post(
                self.token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Token exchange request failed: {e}")
            raise UpstreamUnavailable("Token exchange failed") from e

        if response.status_code >= 500:
            raise UpstreamUnavailable("Token exchange failed", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Token exchange returned invalid JSON", response.status_code) from e

        if not response.ok or not payload.get("access_token"):
            description = payload.get("error_description") or payload.get("error") or "no access_token"
            logger.warning(f"Token exchange rejected: {description}")
            raise UpstreamAuthError(f"Token exchange rejected: {description}", response.status_code)

        return payload

    def list_events(self, credential: Credential) -> List[Dict]:
        """Events owned by the authorized Eventbrite user."""
        return self._get_paginated(f"{self.base_url}/users/me/events/", credential, "events")

    def fetch_roster(self, event_id: str, credential: Credential) -> List[Dict]:
        """All attendees Eventbrite currently knows for one event."""
        url = f"{self.base_url}/events/{event_id}/attendees/"
        attendees = self._get_paginated(url, credential, "attendees")
        logger.info(f"Fetched {len(attendees)} attendees for event {event_id}")
        return attendees

    def fetch_by_reference(self, url: str, credential: Credential) -> Dict:
        """
        Fetch a single attendee through the api_url of a webhook notification.

        Only URLs on the configured API host are followed so the bearer token
        is never sent anywhere else.
        """
        if not self._is_trusted(url):
            raise MalformedNotification(f"Reference locator is not an Eventbrite API URL: {url}")
        return self._get(url, credential)

    def _is_trusted(self, url: str) -> bool:
        parsed = urlparse(url)
        trusted = urlparse(self.base_url)
        return parsed.scheme == trusted.scheme and parsed.netloc == trusted.netloc

    def _get_paginated(self, url: str, credential: Credential, key: str) -> List[Dict]:
        items = []
        params = {}

        for _ in range(self.max_pages):
            page = self._get(url, credential, params=params)
            items.extend(page.get(key) or [])

            pagination = page.get("pagination") or {}
            continuation = pagination.get("continuation")
            if not pagination.get("has_more_items") or not continuation:
                return items
            params = {"continuation": continuation}

        logger.warning(f"⚠️ Stopped paging {url} after {self.max_pages} pages")
        return items

    def _get(self, url: str, credential: Credential, params: Optional[Dict] = None) -> Dict:
        headers = {"Authorization": f"Bearer {credential.access_token}"}

        try:
            response = self.session.get(url, headers=headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Eventbrite request failed ({url}): {e}")
            raise UpstreamUnavailable(f"Eventbrite unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise UpstreamAuthError("Eventbrite rejected the credential", response.status_code)
        if not response.ok:
            logger.error(f"Eventbrite returned {response.status_code} for {url}: {response.text[:200]}")
            raise UpstreamUnavailable(f"Eventbrite returned {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Eventbrite returned invalid JSON", response.status_code) from e
