"""Conversation message models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Who authored a message in the conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """A single role-tagged message.

    Messages are immutable once created. Insertion order is conversation
    order, so timestamps within a session never decrease.
    """

    model_config = ConfigDict(frozen=True)

    role: MessageRole = Field(..., description="Author of the message")
    content: str = Field(..., description="Message text")
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the message was created",
    )

    def as_prompt_message(self) -> dict[str, str]:
        """Render as a role/content pair for model invocation."""
        return {"role": self.role.value, "content": self.content}
