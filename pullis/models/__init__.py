"""Data models for Pullis."""

from .api_response import DeliveryResult, FanOutResult, WebhookResponse
from .command import CommandResponse, SlackCommand
from .event import InboundEvent, PullRequestPayload
from .message import ChannelMessage
from .repository import OwnerType, RepositoryCreate, RepositoryRecord
from .subscription import Subscription, SubscriptionCreate
from .user import User, UserMapping

__all__ = [
    # Repository models
    "OwnerType",
    "RepositoryRecord",
    "RepositoryCreate",
    # Subscription models
    "Subscription",
    "SubscriptionCreate",
    # User models
    "User",
    "UserMapping",
    # Event models
    "InboundEvent",
    "PullRequestPayload",
    # Slack command models
    "SlackCommand",
    "CommandResponse",
    # Message models
    "ChannelMessage",
    # API response models
    "WebhookResponse",
    "DeliveryResult",
    "FanOutResult",
]
