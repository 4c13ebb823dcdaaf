"""AI agents for package production and the studio assistant."""

from .base import BaseAgent
from .producer import ProducerAgent
from .assistant import AssistantAgent, ChatSession

__all__ = ["AssistantAgent", "BaseAgent", "ChatSession", "ProducerAgent"]
