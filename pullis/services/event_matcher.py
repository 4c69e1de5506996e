"""
Event Matcher component.

Resolves the tracked repository for an inbound event and selects the
subscriptions that want it delivered.
"""

from typing import List, Tuple

from pullis.db.repositories import RepositoryStore
from pullis.db.subscriptions import SubscriptionStore
from pullis.models.event import InboundEvent
from pullis.models.repository import RepositoryRecord
from pullis.models.subscription import Subscription
from pullis.utils.logging import get_logger

logger = get_logger(__name__)

Match = Tuple[Subscription, RepositoryRecord]


class EventMatcher:
    """Matches inbound events against stored subscriptions. Read-only."""

    def __init__(self, repositories: RepositoryStore, subscriptions: SubscriptionStore):
        self.repositories = repositories
        self.subscriptions = subscriptions

    async def match(self, event: InboundEvent) -> List[Match]:
        """
        Find the subscriptions an event should be delivered to.

        A subscription matches when it is active and its event list contains
        the event's qualified name exactly; there are no wildcards.

        Args:
            event: Inbound repository event

        Returns:
            (subscription, repository) pairs in no particular order; empty
            when the repository is not tracked or nothing is subscribed
        """
        event_name = event.qualified_name
        log = logger.with_context(event_name=event_name, delivery_id=event.delivery_id)

        repository = await self.repositories.find_by_github_id(event.repository_external_id)
        if repository is None:
            log.debug(f"Repository {event.repository_external_id} is not tracked, skipping")
            return []

        subscriptions = await self.subscriptions.find_by_repository_id(repository.id)
        if not subscriptions:
            log.debug(f"No subscriptions found for repository {repository.full_name}, skipping")
            return []

        matches = [
            (subscription, repository)
            for subscription in subscriptions
            if subscription.matches(event_name)
        ]

        log.info(
            f"Matched {len(matches)}/{len(subscriptions)} subscriptions for {repository.full_name}",
            extra={"repository_id": repository.id}
        )
        return matches
