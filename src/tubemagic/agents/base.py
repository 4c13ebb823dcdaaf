"""Base agent abstraction."""

import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from ..services.base import GenerationClient

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for AI agents.

    Provides shared functionality for agents that delegate generation to a
    GenerationClient. Subclasses must implement the `run` method and define
    their system instruction.
    """

    def __init__(self, client: GenerationClient) -> None:
        """Initialize the agent.

        Args:
            client: The generation client shared by the whole studio.
        """
        self._client = client
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the agent's name."""
        ...

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """Return the system instruction for this agent."""
        ...

    @property
    def client(self) -> GenerationClient:
        return self._client

    @abstractmethod
    async def run(self, input_data: InputT) -> OutputT:
        """Execute the agent's main task.

        Args:
            input_data: Input data for the agent.

        Returns:
            Structured output from the agent.
        """
        ...
