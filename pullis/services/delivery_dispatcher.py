"""
Delivery Dispatcher component.

Sends formatted messages to Slack channels, one delivery at a time. A
failed delivery is reported in its result and never raised, so deliveries
to other channels for the same event are unaffected.
"""

from pullis.models.api_response import DeliveryResult
from pullis.models.message import ChannelMessage
from pullis.services.slack_client import DeliveryError, SlackClient
from pullis.utils.logging import get_logger

logger = get_logger(__name__)


class DeliveryDispatcher:
    """Delivers channel messages through the Slack client."""

    def __init__(self, slack_client: SlackClient):
        self.slack_client = slack_client

    async def deliver(self, message: ChannelMessage) -> DeliveryResult:
        """
        Deliver one message to its channel.

        Args:
            message: Channel-addressed message

        Returns:
            DeliveryResult with success status and error text on failure
        """
        try:
            await self.slack_client.post_message(
                message.channel_id,
                message.plain_text,
                message.blocks,
            )
        except DeliveryError as e:
            logger.error(
                f"Failed to deliver notification to {message.channel_id}: {e}",
                extra={"channel_id": message.channel_id}
            )
            return DeliveryResult(channel_id=message.channel_id, success=False, error=str(e))
        except Exception as e:
            logger.error(
                f"Unexpected error delivering notification to {message.channel_id}: {e}",
                extra={"channel_id": message.channel_id},
                exc_info=True
            )
            return DeliveryResult(channel_id=message.channel_id, success=False, error=str(e))

        logger.info(
            f"Notification sent to Slack channel {message.channel_id}",
            extra={"channel_id": message.channel_id}
        )
        return DeliveryResult(channel_id=message.channel_id, success=True)
