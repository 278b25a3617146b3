#!/usr/bin/env python3
"""
Fetch GitHub Copilot quota data from the copilot_internal/user endpoint.

This is the same endpoint the Copilot Chat extension polls for its own quota
display. It wants a handful of editor identification headers on top of the
token; without them GitHub answers as if the request came from an unknown
integration.

One request per refresh, no retries. If it fails, the next timer tick tries
again.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from token_resolver import CancelToken

# Module-level logger
logger = logging.getLogger(__name__)


@dataclass
class UsageQuota:
    """One metered category. percent_remaining None means unlimited."""
    percent_remaining: Optional[float] = None

    @property
    def unlimited(self) -> bool:
        return self.percent_remaining is None


@dataclass
class UsagePayload:
    """The parts of the API response the indicator cares about."""
    plan: Optional[str] = None
    premium: Optional[UsageQuota] = None
    chat: Optional[UsageQuota] = None

    @property
    def is_empty(self) -> bool:
        """No plan and no quota at all: token probably lacks Copilot access."""
        return not self.plan and self.premium is None and self.chat is None


@dataclass
class FetchOutcome:
    """Classified result of a single usage request."""
    kind: str
    payload: Optional[UsagePayload] = None
    status_code: Optional[int] = None
    message: str = ""

    SUCCESS = "success"
    AUTH_REJECTED = "auth_rejected"
    HTTP_ERROR = "http_error"
    TRANSPORT_ERROR = "transport_error"
    EMPTY_BODY = "empty_body"
    CANCELLED = "cancelled"

    @classmethod
    def success(cls, payload: UsagePayload) -> "FetchOutcome":
        return cls(cls.SUCCESS, payload=payload, status_code=200)

    @classmethod
    def auth_rejected(cls, status_code: int) -> "FetchOutcome":
        return cls(cls.AUTH_REJECTED, status_code=status_code)

    @classmethod
    def http_error(cls, status_code: int) -> "FetchOutcome":
        return cls(cls.HTTP_ERROR, status_code=status_code, message=f"HTTP {status_code}")

    @classmethod
    def transport_error(cls, message: str) -> "FetchOutcome":
        return cls(cls.TRANSPORT_ERROR, message=message)

    @classmethod
    def empty_body(cls) -> "FetchOutcome":
        return cls(cls.EMPTY_BODY, status_code=200)

    @classmethod
    def cancelled(cls) -> "FetchOutcome":
        return cls(cls.CANCELLED)


def _pick(data: Dict[str, Any], snake: str, camel: str) -> Any:
    """Field value under its snake_case name, falling back to camelCase."""
    value = data.get(snake)
    if value is None:
        value = data.get(camel)
    return value


def _parse_quota(snapshot: Any) -> Optional[UsageQuota]:
    if not isinstance(snapshot, dict):
        return None

    remaining = _pick(snapshot, "percent_remaining", "percentRemaining")
    if isinstance(remaining, bool) or not isinstance(remaining, (int, float)):
        remaining = None

    return UsageQuota(percent_remaining=float(remaining) if remaining is not None else None)


def parse_usage_payload(data: Any) -> UsagePayload:
    """
    Decode an API response into a UsagePayload.

    GitHub has served both snake_case and camelCase spellings of the same
    fields. snake_case wins when both are present.

    Example response:
        {
            "copilot_plan": "individual_pro",
            "quota_snapshots": {
                "premium_interactions": {"percent_remaining": 82.5, ...},
                "chat": {"unlimited": true, ...}
            }
        }
    """
    if not isinstance(data, dict):
        return UsagePayload()

    plan = _pick(data, "copilot_plan", "copilotPlan")
    if not isinstance(plan, str) or not plan.strip():
        plan = None

    snapshots = _pick(data, "quota_snapshots", "quotaSnapshots")
    if not isinstance(snapshots, dict):
        snapshots = {}

    return UsagePayload(
        plan=plan,
        premium=_parse_quota(_pick(snapshots, "premium_interactions", "premiumInteractions")),
        chat=_parse_quota(snapshots.get("chat")),
    )


class CopilotUsageAPI:
    """
    Client for the Copilot usage endpoint.

    Requests go through a shared requests.Session on a worker thread so the
    event loop (and the UI running on it) never blocks on the network.
    """

    API_URL = "https://api.github.com/copilot_internal/user"

    # Client identification expected by the endpoint
    EDITOR_VERSION = "vscode/1.96.2"
    EDITOR_PLUGIN_VERSION = "copilot-chat/0.26.7"
    USER_AGENT = "GitHubCopilotChat/0.26.7"
    API_VERSION = "2025-04-01"

    # Request timeout in seconds
    TIMEOUT = 10

    def __init__(self, session: Optional[requests.Session] = None, api_url: Optional[str] = None):
        self.session = session or requests.Session()
        self.api_url = api_url or self.API_URL

    def build_headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"token {token}",
            "Accept": "application/json",
            "Editor-Version": self.EDITOR_VERSION,
            "Editor-Plugin-Version": self.EDITOR_PLUGIN_VERSION,
            "User-Agent": self.USER_AGENT,
            "X-Github-Api-Version": self.API_VERSION,
        }

    def classify_response(self, response) -> FetchOutcome:
        """
        Turn an HTTP response into a FetchOutcome.

        401/403 are reported separately from other failures: they mean a
        token was found but GitHub no longer accepts it.
        """
        status = response.status_code
        logger.debug(f"API response status: {status}")

        if status in (401, 403):
            logger.warning(f"GitHub rejected the token (HTTP {status})")
            return FetchOutcome.auth_rejected(status)

        if status != 200:
            logger.warning(f"Usage request failed: HTTP {status}")
            return FetchOutcome.http_error(status)

        body = response.text
        if not body or not body.strip():
            logger.warning("Usage request returned an empty body")
            return FetchOutcome.empty_body()

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON response: {e}")
            return FetchOutcome.transport_error(f"Invalid JSON: {e}")

        logger.debug(f"Raw API response: {json.dumps(data)}")

        payload = parse_usage_payload(data)
        if payload.is_empty:
            logger.warning("Response has no plan/quota fields")
        return FetchOutcome.success(payload)

    def fetch_sync(self, token: str) -> FetchOutcome:
        """Blocking request + classification. Never raises."""
        logger.debug(f"Making usage API request to {self.api_url}")

        try:
            response = self.session.get(
                self.api_url,
                headers=self.build_headers(token),
                timeout=self.TIMEOUT
            )
        except requests.exceptions.Timeout:
            logger.error(f"Request timed out after {self.TIMEOUT} seconds")
            return FetchOutcome.transport_error(f"Timed out after {self.TIMEOUT}s")
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection failed: {e}")
            return FetchOutcome.transport_error("Connection failed")
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {e}")
            return FetchOutcome.transport_error(str(e))

        return self.classify_response(response)

    async def fetch(self, token: str, cancel: Optional[CancelToken] = None) -> FetchOutcome:
        """
        Fetch and classify usage data without blocking the event loop.

        Args:
            token: GitHub token from the resolver
            cancel: Teardown flag; a cancelled fetch reports CANCELLED

        Returns:
            FetchOutcome
        """
        cancel = cancel or CancelToken()
        if cancel.cancelled:
            return FetchOutcome.cancelled()

        try:
            outcome = await asyncio.to_thread(self.fetch_sync, token)
        except Exception as e:
            logger.error(f"Unexpected error fetching usage data: {e}", exc_info=True)
            outcome = FetchOutcome.transport_error(str(e) or type(e).__name__)

        if cancel.cancelled:
            logger.debug("Usage fetch finished after teardown, dropping result")
            return FetchOutcome.cancelled()
        return outcome

    def close(self):
        """Drop pooled connections."""
        self.session.close()
