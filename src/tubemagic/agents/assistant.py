"""Studio assistant agent and chat transcript."""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from ..errors import ChatError
from ..models import ChatMessage, ChatRole
from ..services.base import GenerationClient
from .base import BaseAgent

SYSTEM_INSTRUCTION = (
    "You are the TubeMagic AI assistant. Help the user refine their YouTube automation "
    "project. Provide expert advice on content strategy, SEO, and visual storytelling."
)

GREETING = "Hi! I am your TubeMagic Assistant. Need help refining your script or strategy?"
APOLOGY = "Sorry, I encountered an error. Please try again."


@dataclass
class ChatTurn:
    """Input data for the assistant agent."""

    message: str
    history: list[ChatMessage] = field(default_factory=list)


class AssistantAgent(BaseAgent[ChatTurn, str]):
    """Agent answering one chat turn with the prior transcript as context."""

    @property
    def name(self) -> str:
        return "AssistantAgent"

    @property
    def system_prompt(self) -> str:
        return SYSTEM_INSTRUCTION

    async def run(self, input_data: ChatTurn) -> str:
        """Answer a chat turn.

        Raises:
            ChatError: If the remote call fails.
        """
        self._logger.debug(
            f"Chat turn with {len(input_data.history)} prior messages, "
            f"message length: {len(input_data.message)}"
        )
        try:
            return await self._client.chat(
                input_data.message,
                input_data.history,
                system_instruction=self.system_prompt,
            )
        except Exception as e:
            self._logger.error(f"Chat turn failed: {e}")
            raise ChatError(str(e)) from e


class ChatSession:
    """Append-only conversation with the studio assistant.

    Failures never break the conversation: the fixed apology is appended in
    place of a reply and the next turn works as usual.
    """

    def __init__(self, client: GenerationClient) -> None:
        self._agent = AssistantAgent(client)
        self._messages: list[ChatMessage] = []
        self._lock = asyncio.Lock()
        self.last_error: Optional[ChatError] = None

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    async def send(self, message: str) -> ChatMessage:
        """Send a user message and return the appended reply.

        Raises:
            ValueError: If the message is blank.
        """
        text = message.strip()
        if not text:
            raise ValueError("Message cannot be empty")

        async with self._lock:
            history = list(self._messages)
            self._messages.append(ChatMessage(role=ChatRole.USER, text=text))

            try:
                reply = await self._agent.run(ChatTurn(message=text, history=history))
                self.last_error = None
            except ChatError as e:
                self.last_error = e
                reply = APOLOGY

            answer = ChatMessage(role=ChatRole.MODEL, text=reply)
            self._messages.append(answer)
            return answer
