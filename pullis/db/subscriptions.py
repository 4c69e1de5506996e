"""Store for channel subscriptions."""

from typing import List, Optional

from pullis.db.base import BaseStore
from pullis.models.subscription import Subscription, SubscriptionCreate


class SubscriptionStore(BaseStore[Subscription]):
    """Subscriptions; (user, repository, channel) is unique."""

    table_name = "subscriptions"
    model = Subscription
    json_columns = ("events",)

    async def find_by_repository_id(self, repository_id: str) -> List[Subscription]:
        return await self.find_all_by(repository_id=repository_id)

    async def find_for_user_and_channel(self, user_id: str, slack_channel_id: str) -> List[Subscription]:
        return await self.find_all_by(user_id=user_id, slack_channel_id=slack_channel_id)

    async def find_for_user_repository_and_channel(
        self,
        user_id: str,
        repository_id: str,
        slack_channel_id: str
    ) -> Optional[Subscription]:
        return await self.find_one_by(
            user_id=user_id,
            repository_id=repository_id,
            slack_channel_id=slack_channel_id,
        )

    async def upsert(self, subscription: SubscriptionCreate) -> Subscription:
        """Create the subscription, or replace the events of the existing one and re-activate it."""
        existing = await self.find_for_user_repository_and_channel(
            subscription.user_id,
            subscription.repository_id,
            subscription.slack_channel_id,
        )

        if existing:
            updated = await self.update(existing.id, {
                "events": subscription.events,
                "is_active": subscription.is_active,
            })
            return updated or existing

        return await self.create(subscription.model_dump())

    async def toggle_subscription(self, subscription_id: str, is_active: bool) -> Optional[Subscription]:
        return await self.update(subscription_id, {"is_active": is_active})
