"""Unit tests for EventbriteClient."""
from urllib.parse import parse_qs

import pytest
import responses
from responses import matchers
from requests.exceptions import ConnectionError as RequestsConnectionError

from starcheckin.core.exceptions import MalformedNotification, UpstreamAuthError, UpstreamUnavailable
from tests.conftest import API_URL, TOKEN_URL


class TestFetchRoster:

    @responses.activate
    def test_follows_continuation(self, eventbrite, authorized):
        url = f"{API_URL}/events/42/attendees/"
        responses.add(
            responses.GET, url,
            json={
                "attendees": [{"id": "1"}, {"id": "2"}],
                "pagination": {"has_more_items": True, "continuation": "page-2"},
            },
            match=[matchers.query_param_matcher({})],
        )
        responses.add(
            responses.GET, url,
            json={"attendees": [{"id": "3"}], "pagination": {"has_more_items": False}},
            match=[matchers.query_param_matcher({"continuation": "page-2"})],
        )

        attendees = eventbrite.fetch_roster("42", authorized)

        assert [a["id"] for a in attendees] == ["1", "2", "3"]
        assert responses.calls[0].request.headers["Authorization"] == "Bearer access-123"

    @responses.activate
    def test_stops_at_page_limit(self, eventbrite, authorized):
        responses.add(
            responses.GET, f"{API_URL}/events/42/attendees/",
            json={"attendees": [{"id": "x"}], "pagination": {"has_more_items": True, "continuation": "again"}},
        )

        attendees = eventbrite.fetch_roster("42", authorized)

        assert len(attendees) == eventbrite.max_pages
        assert len(responses.calls) == eventbrite.max_pages

    @responses.activate
    def test_rejected_credential(self, eventbrite, authorized):
        responses.add(responses.GET, f"{API_URL}/events/42/attendees/", json={"error": "INVALID_AUTH"}, status=401)

        with pytest.raises(UpstreamAuthError):
            eventbrite.fetch_roster("42", authorized)

    @responses.activate
    def test_server_error(self, eventbrite, authorized):
        responses.add(responses.GET, f"{API_URL}/events/42/attendees/", body="oops", status=503)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            eventbrite.fetch_roster("42", authorized)
        assert exc_info.value.status_code == 503

    @responses.activate
    def test_network_error(self, eventbrite, authorized):
        responses.add(
            responses.GET, f"{API_URL}/events/42/attendees/",
            body=RequestsConnectionError("connection refused"),
        )

        with pytest.raises(UpstreamUnavailable):
            eventbrite.fetch_roster("42", authorized)


class TestFetchByReference:

    @responses.activate
    def test_fetches_attendee(self, eventbrite, authorized):
        url = f"{API_URL}/events/42/attendees/7/"
        responses.add(responses.GET, url, json={"id": "7", "profile": {"name": "Grace"}})

        assert eventbrite.fetch_by_reference(url, authorized)["id"] == "7"

    @responses.activate
    def test_foreign_host_is_never_called(self, eventbrite, authorized):
        with pytest.raises(MalformedNotification):
            eventbrite.fetch_by_reference("https://evil.example.com/steal/", authorized)
        assert len(responses.calls) == 0


class TestExchangeCode:

    @responses.activate
    def test_posts_form_and_returns_payload(self, eventbrite):
        payload = {"access_token": "new-token", "token_type": "bearer"}
        responses.add(responses.POST, TOKEN_URL, json=payload)

        assert eventbrite.exchange_code("auth-code") == payload

        sent = parse_qs(responses.calls[0].request.body)
        assert sent["code"] == ["auth-code"]
        assert sent["grant_type"] == ["authorization_code"]
        assert sent["client_id"] == ["test-client-id"]
        assert sent["client_secret"] == ["test-client-secret"]
        assert "redirect_uri" in sent

    @responses.activate
    def test_rejected_code(self, eventbrite):
        responses.add(
            responses.POST, TOKEN_URL,
            json={"error": "invalid_grant", "error_description": "code expired"},
            status=400,
        )

        with pytest.raises(UpstreamAuthError, match="code expired"):
            eventbrite.exchange_code("stale-code")

    @responses.activate
    def test_unreachable(self, eventbrite):
        responses.add(responses.POST, TOKEN_URL, body=RequestsConnectionError("dns failure"))

        with pytest.raises(UpstreamUnavailable):
            eventbrite.exchange_code("auth-code")


@responses.activate
def test_list_events(eventbrite, authorized):
    responses.add(
        responses.GET, f"{API_URL}/users/me/events/",
        json={"events": [{"id": "42", "name": {"text": "Launch"}}], "pagination": {"has_more_items": False}},
    )

    events = eventbrite.list_events(authorized)

    assert events == [{"id": "42", "name": {"text": "Launch"}}]
