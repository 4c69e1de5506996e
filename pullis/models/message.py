"""Outbound Slack message models."""

from typing import Any, Dict, List

from pydantic import BaseModel


class ChannelMessage(BaseModel):
    """A message addressed to one Slack channel."""

    channel_id: str
    plain_text: str
    blocks: List[Dict[str, Any]] = []
