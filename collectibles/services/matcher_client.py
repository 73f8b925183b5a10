"""HTTP client for invoking the wishlist matcher endpoint"""
from typing import Any, Dict, Optional
import logging
import requests
from collectibles.config import get_settings
from collectibles.exceptions import MatcherInvocationError
from collectibles.schemas.match_schema import build_match_request

logger = logging.getLogger(__name__)


class MatcherClient:
    """Posts match jobs to the matcher endpoint with the caller's bearer token"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.url = base_url or settings.matcher_url
        self.auth_token = auth_token if auth_token is not None else settings.matcher_auth_token
        self.timeout = timeout if timeout is not None else settings.matcher_timeout_seconds
        self.session = session or requests.Session()

    def run_job(self, job_type: str, reference_id: str) -> Dict[str, Any]:
        """Invoke the matcher for a queued job and return the decoded success body"""
        payload = build_match_request(job_type, reference_id)

        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise MatcherInvocationError(f"Matcher request failed: {e}")

        if not response.ok:
            raise MatcherInvocationError(response.text or response.reason, status_code=response.status_code)

        logger.debug(f"Matcher {payload['mode']} for {reference_id} returned {response.status_code}")
        return response.json()
