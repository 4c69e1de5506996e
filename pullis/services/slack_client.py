"""
Slack Web API client.

Wraps the slack_sdk WebClient. The SDK client is blocking, so every call is
run in a worker thread to keep the event loop free.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional
from urllib.error import URLError

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from pullis.utils.logging import get_logger, log_slack_call
from pullis.utils.resilience import TransientError, retry_with_backoff

logger = get_logger(__name__)


class DeliveryError(Exception):
    """Raised when a message could not be posted to Slack."""

    def __init__(self, message: str, channel_id: Optional[str] = None):
        super().__init__(message)
        self.channel_id = channel_id


class TransientDeliveryError(DeliveryError, TransientError):
    """Delivery failure worth retrying (rate limiting, connection problems)."""
    pass


class SlackClient:
    """Posts messages and looks up users through the Slack Web API."""

    def __init__(
        self,
        token: str,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        request_timeout: int = 3,
        web_client: Optional[WebClient] = None
    ):
        """
        Initialize the Slack client.

        Args:
            token: Bot token (xoxb-...)
            max_retries: Attempts per message for transient failures
            retry_base_delay: Initial backoff delay in seconds
            request_timeout: HTTP timeout in seconds for each Web API call
            web_client: Preconfigured WebClient, mainly for tests
        """
        self._client = web_client or WebClient(token=token, timeout=request_timeout)
        self._max_retries = max(1, max_retries)
        self._retry_base_delay = retry_base_delay

    async def post_message(
        self,
        channel_id: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None
    ) -> None:
        """
        Post a message to a channel, retrying transient failures.

        Raises:
            DeliveryError: If Slack rejects the message or stays unreachable
        """
        post = retry_with_backoff(
            max_retries=self._max_retries,
            base_delay=self._retry_base_delay,
            exceptions=(TransientDeliveryError,)
        )(self._post_once)

        await post(channel_id, text, blocks)

    async def _post_once(
        self,
        channel_id: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]]
    ) -> None:
        start = time.perf_counter()

        try:
            await asyncio.to_thread(
                self._client.chat_postMessage,
                channel=channel_id,
                text=text,
                blocks=blocks or None,
            )
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error") if e.response is not None else str(e)
            log_slack_call(logger, "chat.postMessage", channel_id=channel_id, error=error)

            status_code = getattr(e.response, "status_code", None)
            if status_code == 429 or error == "ratelimited":
                raise TransientDeliveryError(f"Slack rate limited: {error}", channel_id) from e
            raise DeliveryError(f"Slack rejected message: {error}", channel_id) from e
        except (URLError, OSError) as e:
            log_slack_call(logger, "chat.postMessage", channel_id=channel_id, error=str(e))
            raise TransientDeliveryError(f"Slack unreachable: {e}", channel_id) from e

        log_slack_call(
            logger,
            "chat.postMessage",
            channel_id=channel_id,
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    async def get_user_name(self, slack_user_id: str) -> str:
        """
        Display name of a Slack user, falling back to the user id.

        Args:
            slack_user_id: Slack user id (U...)
        """
        try:
            response = await asyncio.to_thread(self._client.users_info, user=slack_user_id)
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error") if e.response is not None else str(e)
            log_slack_call(logger, "users.info", error=error)
            return slack_user_id

        user = response.get("user") or {}
        profile = user.get("profile") or {}
        return profile.get("display_name") or user.get("name") or slack_user_id
