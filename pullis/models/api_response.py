"""API and delivery result models."""

from typing import List, Optional

from pydantic import BaseModel


class WebhookResponse(BaseModel):
    """Response from webhook handler."""

    status: str
    message: str


class DeliveryResult(BaseModel):
    """Outcome of delivering one message to one channel."""

    channel_id: str
    success: bool
    error: Optional[str] = None


class FanOutResult(BaseModel):
    """Outcome of delivering one event to all matching channels."""

    event_name: str
    matched_count: int = 0
    delivered_count: int = 0
    failed_count: int = 0
    errors: List[str] = []

    @property
    def success(self) -> bool:
        return self.failed_count == 0
