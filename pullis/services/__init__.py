"""Business logic services package."""

from pullis.services.event_matcher import EventMatcher
from pullis.services.notification_formatter import NotificationFormatter, action_phrase
from pullis.services.delivery_dispatcher import DeliveryDispatcher
from pullis.services.notification_pipeline import NotificationPipeline
from pullis.services.slack_client import (
    SlackClient,
    DeliveryError,
    TransientDeliveryError
)
from pullis.services.github_events import (
    MalformedEventError,
    WebhookSignatureError,
    parse_pull_request_event,
    verify_github_signature
)
from pullis.services.installation_service import InstallationService
from pullis.services.slack_commands import SlackCommandService, CommandError
from pullis.services.slack_events import SlackEventHandler
from pullis.services.redis_client import RedisClient, RedisConnectionError

__all__ = [
    'EventMatcher',
    'NotificationFormatter',
    'action_phrase',
    'DeliveryDispatcher',
    'NotificationPipeline',
    'SlackClient',
    'DeliveryError',
    'TransientDeliveryError',
    'MalformedEventError',
    'WebhookSignatureError',
    'parse_pull_request_event',
    'verify_github_signature',
    'InstallationService',
    'SlackCommandService',
    'CommandError',
    'SlackEventHandler',
    'RedisClient',
    'RedisConnectionError'
]
