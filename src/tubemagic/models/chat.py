"""Chat transcript model."""

from enum import Enum
from pydantic import BaseModel, Field


class ChatRole(str, Enum):
    """Author of a chat message."""
    USER = "user"
    MODEL = "model"


class ChatMessage(BaseModel):
    """A single transcript entry."""

    role: ChatRole = Field(..., description="Message author")
    text: str = Field(..., description="Message text")
