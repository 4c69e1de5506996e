"""User and identity mapping data models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    """Internal user, linking a GitHub account to a Slack identity."""

    id: str
    github_id: Optional[int] = None
    github_username: str
    email: Optional[str] = None
    slack_user_id: Optional[str] = None
    slack_username: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserMapping(BaseModel):
    """GitHub username to Slack user mapping, used for mentions."""

    id: str
    github_username: str
    slack_user_id: str
    slack_username: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
