"""Slack slash command models."""

from typing import Any, Dict, List

from pydantic import BaseModel


class SlackCommand(BaseModel):
    """Slash command invocation posted by Slack."""

    command: str
    text: str = ""
    user_id: str
    user_name: str = ""
    channel_id: str
    response_url: str

    @property
    def args(self) -> List[str]:
        return self.text.split()


class CommandResponse(BaseModel):
    """Reply posted back to the command's response_url."""

    text: str
    blocks: List[Dict[str, Any]] = []
    response_type: str = "ephemeral"
