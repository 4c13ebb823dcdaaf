"""Generation service contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..models import ChatMessage, ImageSize


@dataclass
class VideoJob:
    """Handle for a long-running video generation job."""

    name: str
    done: bool = False
    result_uri: Optional[str] = None
    error_message: Optional[str] = None


class GenerationClient(ABC):
    """Remote generation capabilities the studio depends on.

    Every method is a fallible, latency-bearing remote call. Implementations
    raise ``RemoteServiceError`` (or ``StaleCredentialError``) on failure.
    """

    @abstractmethod
    async def generate_structured_content(
        self,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: Optional[str] = None,
    ) -> dict[str, Any]:
        """Generate JSON content constrained by a response schema."""
        ...

    @abstractmethod
    async def generate_image(self, prompt: str, size: ImageSize) -> bytes:
        """Generate a single image and return its encoded bytes."""
        ...

    @abstractmethod
    async def start_video(self, prompt: str) -> VideoJob:
        """Submit a video generation job."""
        ...

    @abstractmethod
    async def poll_video(self, job: VideoJob) -> VideoJob:
        """Return the current state of a video job."""
        ...

    @abstractmethod
    async def fetch_video(self, uri: str) -> bytes:
        """Download the content a finished video job points at."""
        ...

    @abstractmethod
    async def chat(
        self,
        message: str,
        history: Sequence[ChatMessage],
        system_instruction: Optional[str] = None,
    ) -> str:
        """Answer a chat message given the prior transcript."""
        ...
