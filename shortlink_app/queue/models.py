"""
Data models for queue messages.
"""

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime, timezone
from typing import Optional

from shortlink_app.storage.clicks import ClickContext


class ClickEvent(BaseModel):
    """
    Event model for background click tracking.

    Published by the redirect handler when tracking runs in background mode.
    The click worker turns each event into one Click row plus one hit
    counter increment.
    """

    slug: str = Field(..., description="The slug that was visited")
    link_id: int = Field(..., description="Primary key of the resolved link")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the redirect happened"
    )

    # Request metadata
    ip: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="User agent string")
    referrer: Optional[str] = Field(None, description="HTTP referer")

    # Set by the queue on consume, used for acknowledgment
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "slug": "aZ3_k9",
                "link_id": 42,
                "timestamp": "2024-01-01T10:30:00Z",
                "ip": "192.168.1.1",
                "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0",
                "referrer": "https://twitter.com",
            }
        }
    )

    def to_context(self) -> ClickContext:
        return ClickContext(user_agent=self.user_agent, referrer=self.referrer, ip=self.ip)
