"""Gateway transports.

- InMemoryTransport: deterministic transport recording every message,
  with scripted failures; used for development and tests.
- WebhookHttpTransport: HTTP delivery with requests, run in a worker thread.
- SlackWebTransport: Slack Web API delivery with slack_sdk, run in a
  worker thread.
"""

import asyncio
import itertools
import uuid
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Union

import requests
import structlog
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from notifier.notifications.channels.base import PreparedMessage
from notifier.notifications.errors import ErrorCode
from notifier.operations import TransportError

logger = structlog.get_logger()

Outcome = Union[None, str, Exception]


class InMemoryTransport:
    """Deterministic in-memory transport.

    Outcomes are taken first from failures registered for a recipient,
    then from the script queue, and default to success. A string outcome
    raises TransportError with that code; an exception outcome is raised
    as-is; None succeeds.

    Example:
        transport = InMemoryTransport("sms")
        transport.script("CONNECTION_ERROR", None)
        transport.fail_recipient("+15550000000", "SERVICE_ERROR")
    """

    def __init__(self, name: str = "memory", healthy: bool = True, latency: float = 0.0):
        self.name = name
        self.healthy = healthy
        self.latency = latency
        self.sent: List[PreparedMessage] = []
        self.calls: List[PreparedMessage] = []
        self._script: Deque[Outcome] = deque()
        self._recipient_failures: Dict[str, Outcome] = {}
        self._ids = itertools.count(1)

    def script(self, *outcomes: Outcome) -> "InMemoryTransport":
        """Queue outcomes for the next sends."""
        self._script.extend(outcomes)
        return self

    def fail_recipient(self, recipient: str, outcome: Outcome) -> "InMemoryTransport":
        """Fail every send to a recipient with the given outcome."""
        self._recipient_failures[recipient] = outcome
        return self

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def send(self, message: PreparedMessage) -> str:
        self.calls.append(message)
        if self.latency:
            await asyncio.sleep(self.latency)

        if message.recipient in self._recipient_failures:
            outcome = self._recipient_failures[message.recipient]
        elif self._script:
            outcome = self._script.popleft()
        else:
            outcome = None

        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            raise TransportError(outcome, f"{self.name} transport failed with {outcome}")

        self.sent.append(message)
        return f"{self.name}-{next(self._ids)}"

    async def ping(self) -> bool:
        return self.healthy


class WebhookHttpTransport:
    """Deliver webhook notifications over HTTP.

    Args:
        session: Optional requests session (a new one is created otherwise)
        signing_secret: Optional secret sent in the X-Notifier-Signature header
        timeout_seconds: HTTP timeout passed to requests
        health_check_url: Optional URL requested by ping()
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        signing_secret: Optional[str] = None,
        timeout_seconds: float = 10.0,
        health_check_url: Optional[str] = None,
    ):
        self.session = session or requests.Session()
        self.signing_secret = signing_secret
        self.timeout_seconds = timeout_seconds
        self.health_check_url = health_check_url

    async def send(self, message: PreparedMessage) -> str:
        return await asyncio.to_thread(self._post, message)

    async def ping(self) -> bool:
        if not self.health_check_url:
            return True
        return await asyncio.to_thread(self._check_health_url)

    def _post(self, message: PreparedMessage) -> str:
        payload: Dict[str, Any] = {
            "request_id": message.request_id,
            "subject": message.subject,
            "body": message.body,
            "priority": message.priority,
            "metadata": message.metadata,
        }
        headers = {"Content-Type": "application/json"}
        headers.update(message.options.get("headers") or {})
        if self.signing_secret:
            headers["X-Notifier-Signature"] = self.signing_secret

        try:
            response = self.session.request(
                message.options.get("method", "POST"),
                message.recipient,
                json=payload,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportError(ErrorCode.CONNECTION_ERROR, str(e)) from e
        except requests.RequestException as e:
            raise TransportError(ErrorCode.GATEWAY_ERROR, str(e)) from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransportError(
                ErrorCode.SERVICE_ERROR, f"Webhook returned {response.status_code}"
            )
        if response.status_code == 413:
            raise TransportError(ErrorCode.PAYLOAD_TOO_LARGE, "Webhook rejected payload size")
        if response.status_code >= 400:
            raise TransportError(
                ErrorCode.VALIDATION_ERROR, f"Webhook rejected request ({response.status_code})"
            )

        return response.headers.get("X-Request-Id") or str(uuid.uuid4())

    def _check_health_url(self) -> bool:
        try:
            response = self.session.head(self.health_check_url, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            logger.warning("webhook_health_check_failed", error=str(e))
            return False
        return response.status_code < 500


# Slack API errors that will not succeed on retry
_SLACK_PERMANENT_ERRORS = {
    "channel_not_found": ErrorCode.VALIDATION_ERROR,
    "user_not_found": ErrorCode.VALIDATION_ERROR,
    "not_in_channel": ErrorCode.VALIDATION_ERROR,
    "is_archived": ErrorCode.VALIDATION_ERROR,
    "invalid_auth": ErrorCode.INVALID_TOKEN,
    "not_authed": ErrorCode.INVALID_TOKEN,
    "token_revoked": ErrorCode.INVALID_TOKEN,
    "msg_too_long": ErrorCode.PAYLOAD_TOO_LARGE,
}


class SlackWebTransport:
    """Deliver Slack notifications with the Slack Web API.

    Args:
        client: Configured slack_sdk WebClient
    """

    def __init__(self, client: WebClient):
        self.client = client

    @classmethod
    def from_token(cls, token: str) -> "SlackWebTransport":
        return cls(WebClient(token=token))

    async def send(self, message: PreparedMessage) -> str:
        return await asyncio.to_thread(self._post, message)

    async def ping(self) -> bool:
        try:
            response = await asyncio.to_thread(self.client.auth_test)
        except SlackApiError as e:
            logger.warning("slack_auth_test_failed", error=e.response.get("error"))
            return False
        return bool(response.get("ok"))

    def _post(self, message: PreparedMessage) -> str:
        text = f"*{message.subject}*\n{message.body}" if message.subject else message.body
        try:
            response = self.client.chat_postMessage(
                channel=message.recipient, text=text, **message.options
            )
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error")
            if error == "ratelimited":
                raise TransportError(ErrorCode.SERVICE_ERROR, "Slack rate limited") from e
            raise TransportError(
                _SLACK_PERMANENT_ERRORS.get(error, ErrorCode.GATEWAY_ERROR),
                f"Slack API error: {error}",
            ) from e
        return response["ts"]
