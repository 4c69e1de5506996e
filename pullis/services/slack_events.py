"""
Slack Events API handling.

Answers app mentions with a greeting and direct messages with a short help
text listing the slash commands.
"""

from typing import Any, Dict, List

from pullis.services.slack_client import DeliveryError, SlackClient
from pullis.utils.logging import get_logger

logger = get_logger(__name__)

IGNORED_SUBTYPES = {"bot_message", "message_changed", "message_deleted"}

HELP_TEXT = "Hi there! Here are some things you can do:"

HELP_BLOCKS: List[Dict[str, Any]] = [
    {
        "type": "section",
        "text": {
            "type": "mrkdwn",
            "text": "*Hi there!* :wave: I'm Pullis, your GitHub notification bot. Here's what you can do:",
        },
    },
    {"type": "divider"},
    {
        "type": "section",
        "text": {
            "type": "mrkdwn",
            "text": (
                "• `/subscribe owner/repo [event ...]` - Subscribe this channel to pull request updates\n"
                "• `/unsubscribe owner/repo` - Unsubscribe from repository updates\n"
                "• `/pause owner/repo` / `/resume owner/repo` - Pause or resume notifications\n"
                "• `/list` - List your current subscriptions\n"
                "• `/map-user github-username` - Map your GitHub username to your Slack account"
            ),
        },
    },
]


class SlackEventHandler:
    """Reacts to Slack event callbacks."""

    def __init__(self, slack_client: SlackClient):
        self.slack_client = slack_client

    async def handle(self, event: Dict[str, Any]) -> None:
        """
        Handle the ``event`` object of an event_callback envelope.

        Never raises for Slack delivery failures; they are logged.
        """
        event_type = event.get("type")

        try:
            if event_type == "app_mention":
                await self._greet(event)
            elif event_type == "message" and self._is_direct_message(event):
                await self.slack_client.post_message(event["channel"], HELP_TEXT, HELP_BLOCKS)
            else:
                logger.debug(f"Ignoring Slack event {event_type}")
        except DeliveryError as e:
            logger.error(f"Error handling Slack {event_type} event: {e}", extra={"channel_id": event.get("channel")})

    async def _greet(self, event: Dict[str, Any]) -> None:
        logger.info("Received app_mention event", extra={"channel_id": event.get("channel")})
        await self.slack_client.post_message(
            event["channel"],
            f"Hello, <@{event.get('user')}>! I'm Pullis, your GitHub notification bot.",
        )

    @staticmethod
    def _is_direct_message(event: Dict[str, Any]) -> bool:
        if event.get("subtype") in IGNORED_SUBTYPES or event.get("bot_id"):
            return False
        return event.get("channel_type") == "im" and bool(event.get("channel"))
