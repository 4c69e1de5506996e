"""Subscription data models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class Subscription(BaseModel):
    """A Slack channel's subscription to events of one repository."""

    id: str
    user_id: str
    repository_id: str
    slack_channel_id: str
    events: List[str] = []  # e.g. ['pull_request.opened', 'pull_request.closed']
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def matches(self, event_name: str) -> bool:
        """Whether this subscription wants ``event_name`` delivered right now."""
        return self.is_active and event_name in self.events


class SubscriptionCreate(BaseModel):
    """Fields needed to create a subscription."""

    user_id: str
    repository_id: str
    slack_channel_id: str
    events: List[str]
    is_active: bool = True
