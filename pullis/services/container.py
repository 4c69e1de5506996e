"""
Service container.

Builds every service once at application startup and owns their lifecycle.
API routes receive the container through a FastAPI dependency instead of
module-level service instances.
"""

from typing import Optional

import httpx
from fastapi import Request

from pullis.config import Settings
from pullis.db import Database, RepositoryStore, SubscriptionStore, UserMappingStore, UserStore
from pullis.services.delivery_dispatcher import DeliveryDispatcher
from pullis.services.event_matcher import EventMatcher
from pullis.services.installation_service import InstallationService
from pullis.services.notification_formatter import NotificationFormatter
from pullis.services.notification_pipeline import NotificationPipeline
from pullis.services.redis_client import RedisClient
from pullis.services.slack_client import SlackClient
from pullis.services.slack_commands import SlackCommandService
from pullis.services.slack_events import SlackEventHandler
from pullis.utils.logging import get_logger

logger = get_logger(__name__)


class ServiceContainer:
    """Holds the application's services, wired from settings."""

    def __init__(
        self,
        settings: Settings,
        database: Optional[Database] = None,
        redis_client: Optional[RedisClient] = None,
        slack_client: Optional[SlackClient] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.settings = settings

        self.database = database or Database(settings.database_url)
        self.redis_client = redis_client or RedisClient(settings.redis_url)
        self.slack_client = slack_client or SlackClient(
            settings.slack_bot_token,
            max_retries=settings.delivery_max_retries,
            request_timeout=settings.slack_request_timeout_seconds,
        )

        self.users = UserStore(self.database)
        self.repositories = RepositoryStore(self.database)
        self.subscriptions = SubscriptionStore(self.database)
        self.user_mappings = UserMappingStore(self.database)

        self.pipeline = NotificationPipeline(
            matcher=EventMatcher(self.repositories, self.subscriptions),
            formatter=NotificationFormatter(self.user_mappings),
            dispatcher=DeliveryDispatcher(self.slack_client),
            delivery_timeout=settings.delivery_timeout_seconds,
        )
        self.installations = InstallationService(self.users, self.repositories)
        self.slack_events = SlackEventHandler(self.slack_client)
        self.commands = SlackCommandService(
            users=self.users,
            repositories=self.repositories,
            subscriptions=self.subscriptions,
            user_mappings=self.user_mappings,
            slack_client=self.slack_client,
            http_client=http_client,
        )

    async def start(self) -> None:
        """Open database and Redis connections."""
        await self.database.initialize()
        logger.info("Database initialized")

        await self.redis_client.initialize()
        logger.info("Redis client initialized")

    async def stop(self) -> None:
        """Close every connection opened by start()."""
        await self.commands.close()
        await self.redis_client.close()
        await self.database.close()
        logger.info("Services stopped")


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container built at startup."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services are not initialized")
    return services
