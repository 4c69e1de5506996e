"""
Notification pipeline.

Runs one inbound event through matching, formatting and delivery. Matched
subscriptions are notified concurrently; each delivery has its own timeout
and its own result.
"""

import asyncio

from pullis.models.api_response import DeliveryResult, FanOutResult
from pullis.models.event import InboundEvent
from pullis.models.repository import RepositoryRecord
from pullis.models.subscription import Subscription
from pullis.services.delivery_dispatcher import DeliveryDispatcher
from pullis.services.event_matcher import EventMatcher
from pullis.services.notification_formatter import NotificationFormatter
from pullis.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationPipeline:
    """Match → format → deliver for a single event."""

    def __init__(
        self,
        matcher: EventMatcher,
        formatter: NotificationFormatter,
        dispatcher: DeliveryDispatcher,
        delivery_timeout: float = 10.0
    ):
        self.matcher = matcher
        self.formatter = formatter
        self.dispatcher = dispatcher
        self.delivery_timeout = delivery_timeout

    async def process(self, event: InboundEvent) -> FanOutResult:
        """
        Notify every channel subscribed to this event.

        Args:
            event: Inbound repository event

        Returns:
            FanOutResult with per-event delivery counts and errors
        """
        event_name = event.qualified_name
        matches = await self.matcher.match(event)

        if not matches:
            return FanOutResult(event_name=event_name)

        results = await asyncio.gather(*(
            self._notify(event, subscription, repository)
            for subscription, repository in matches
        ))

        failed = [result for result in results if not result.success]
        fan_out = FanOutResult(
            event_name=event_name,
            matched_count=len(matches),
            delivered_count=len(results) - len(failed),
            failed_count=len(failed),
            errors=[f"{result.channel_id}: {result.error}" for result in failed],
        )

        log = logger.with_context(event_name=event_name, delivery_id=event.delivery_id)
        if failed:
            log.warning(
                f"Partial delivery for {event_name}: "
                f"{fan_out.delivered_count}/{fan_out.matched_count} succeeded",
                extra={"errors": fan_out.errors[:10]}
            )
        else:
            log.info(f"Delivered {event_name} to {fan_out.delivered_count} channel(s)")

        return fan_out

    async def _notify(
        self,
        event: InboundEvent,
        subscription: Subscription,
        repository: RepositoryRecord
    ) -> DeliveryResult:
        channel_id = subscription.slack_channel_id

        try:
            message = await self.formatter.format(event, subscription, repository)
            return await asyncio.wait_for(
                self.dispatcher.deliver(message),
                timeout=self.delivery_timeout
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Delivery to {channel_id} timed out after {self.delivery_timeout}s",
                extra={"channel_id": channel_id}
            )
            return DeliveryResult(
                channel_id=channel_id,
                success=False,
                error=f"timed out after {self.delivery_timeout}s"
            )
        except Exception as e:
            logger.error(
                f"Error preparing notification for {channel_id}: {e}",
                extra={"channel_id": channel_id},
                exc_info=True
            )
            return DeliveryResult(channel_id=channel_id, success=False, error=str(e))
