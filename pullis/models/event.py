"""Inbound repository event models."""

from typing import Optional

from pydantic import BaseModel, Field


class PullRequestPayload(BaseModel):
    """Pull request details carried by an inbound event."""

    number: int
    title: str
    url: str
    body: Optional[str] = None
    additions: Optional[int] = None
    deletions: Optional[int] = None
    changed_files: Optional[int] = None

    @property
    def has_diff_stats(self) -> bool:
        return (
            self.additions is not None
            and self.deletions is not None
            and self.changed_files is not None
        )


class InboundEvent(BaseModel):
    """Repository event received from GitHub, independent of the payload shape."""

    category: str = Field(min_length=1)  # 'pull_request'
    action: str = Field(min_length=1)  # 'opened', 'closed', ...
    repository_external_id: int = Field(gt=0)
    actor_username: str
    payload: PullRequestPayload
    delivery_id: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        """Qualified event name, e.g. 'pull_request.opened'."""
        return f"{self.category}.{self.action}"
