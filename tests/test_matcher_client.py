import pytest
import requests

from collectibles.exceptions import MatcherInvocationError, MatchValidationError
from collectibles.services.matcher_client import MatcherClient


class FakeResponse:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text
        self.reason = "Reason"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def make_client(session, auth_token="secret-token"):
    return MatcherClient(base_url="http://matcher.test/api/wishlist-matcher", auth_token=auth_token, session=session)


def test_posts_listing_job_with_bearer_token():
    session = FakeSession(FakeResponse(200, {"success": True, "matchesCreated": 0, "matches": []}))

    body = make_client(session).run_job("match_listing", "listing-1")

    assert body["success"] is True
    sent = session.requests[0]
    assert sent["url"] == "http://matcher.test/api/wishlist-matcher"
    assert sent["json"] == {"mode": "match_listing", "marketplaceListingId": "listing-1"}
    assert sent["headers"]["Authorization"] == "Bearer secret-token"


def test_posts_wishlist_job_without_token():
    session = FakeSession(FakeResponse(200, {"success": True, "matchesCreated": 0, "matches": []}))

    make_client(session, auth_token="").run_job("match_wishlist", "wish-1")

    sent = session.requests[0]
    assert sent["json"] == {"mode": "match_wishlist", "wishlistItemId": "wish-1"}
    assert "Authorization" not in sent["headers"]


def test_error_response_carries_status_and_body():
    session = FakeSession(FakeResponse(404, text='{"error": "Listing not found"}'))

    with pytest.raises(MatcherInvocationError) as exc_info:
        make_client(session).run_job("match_listing", "gone")

    assert exc_info.value.status_code == 404
    assert "Listing not found" in exc_info.value.message
    assert exc_info.value.retryable is False


def test_server_error_is_retryable():
    session = FakeSession(FakeResponse(502, text=""))

    with pytest.raises(MatcherInvocationError) as exc_info:
        make_client(session).run_job("match_listing", "listing-1")

    assert exc_info.value.message == "Reason"
    assert exc_info.value.retryable is True


def test_network_failure_is_retryable():
    session = FakeSession(error=requests.ConnectionError("connection refused"))

    with pytest.raises(MatcherInvocationError) as exc_info:
        make_client(session).run_job("match_listing", "listing-1")

    assert exc_info.value.status_code is None
    assert exc_info.value.retryable is True
    assert "connection refused" in exc_info.value.message


def test_unknown_job_type_is_rejected_before_sending():
    session = FakeSession(FakeResponse(200, {}))

    with pytest.raises(MatchValidationError):
        make_client(session).run_job("match_everything", "x")

    assert session.requests == []
