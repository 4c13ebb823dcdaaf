"""Pytest configuration and fixtures."""

import asyncio
from collections import deque
from typing import Any, Optional, Sequence

import pytest

from tubemagic.agents import ProducerAgent
from tubemagic.assets import AssetLifecycleController
from tubemagic.media import MediaStore
from tubemagic.models import ChatMessage, ImageSize
from tubemagic.services.base import GenerationClient, VideoJob
from tubemagic.services.credentials import CredentialProbe
from tubemagic.store import LocalStorage, ProjectStore

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video"


def make_package(num_scenes: int = 3, **overrides: Any) -> dict[str, Any]:
    """A structured payload as the remote model returns it."""
    package = {
        "script": "Wake up early. Drink water. Move your body.",
        "voiceOver": "[energetic] Wake up early.\n[calm] Drink water.",
        "scenes": [
            {"text": f"Sentence {i}", "visualPrompt": f"Cinematic shot {i}"}
            for i in range(num_scenes)
        ],
        "subtitles": "WAKE UP EARLY",
        "musicStyle": "Uplifting lo-fi",
        "youtubeTitle": "5 Morning Habits That Change Everything",
        "youtubeDescription": "Start your day right.",
        "tags": ["morning routine", "habits"],
        "hashtags": ["#shorts", "#habits"],
        "thumbnailText": "DO THIS EVERY MORNING",
    }
    package.update(overrides)
    return package


class FakeGenerationClient(GenerationClient):
    """Scriptable in-memory generation client."""

    def __init__(self) -> None:
        self.package: Any = make_package()
        self.structured_error: Optional[Exception] = None
        self.image_results: deque = deque()
        self.image_gates: deque = deque()
        self.start_error: Optional[Exception] = None
        self.poll_results: deque = deque()
        self.video_bytes = MP4_BYTES
        self.chat_reply = "Try a question in the title."
        self.chat_error: Optional[Exception] = None
        self.calls: list[tuple[str, Any]] = []

    async def generate_structured_content(self, prompt, schema, system_instruction=None):
        self.calls.append(("structured", (prompt, schema, system_instruction)))
        if self.structured_error:
            raise self.structured_error
        return self.package

    async def generate_image(self, prompt: str, size: ImageSize) -> bytes:
        self.calls.append(("image", (prompt, size)))
        result = self.image_results.popleft() if self.image_results else PNG_BYTES
        gate = self.image_gates.popleft() if self.image_gates else None
        if gate is not None:
            await gate.wait()
        if isinstance(result, Exception):
            raise result
        return result

    async def start_video(self, prompt: str) -> VideoJob:
        self.calls.append(("start_video", prompt))
        if self.start_error:
            raise self.start_error
        return VideoJob(name="operations/video-1")

    async def poll_video(self, job: VideoJob) -> VideoJob:
        self.calls.append(("poll_video", job.name))
        await asyncio.sleep(0)
        if self.poll_results:
            result = self.poll_results.popleft()
            if isinstance(result, Exception):
                raise result
            return result
        return VideoJob(name=job.name)

    async def fetch_video(self, uri: str) -> bytes:
        self.calls.append(("fetch_video", uri))
        return self.video_bytes

    async def chat(self, message: str, history: Sequence[ChatMessage], system_instruction=None) -> str:
        self.calls.append(("chat", (message, list(history), system_instruction)))
        if self.chat_error:
            raise self.chat_error
        return self.chat_reply

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


class FakeCredentialProbe(CredentialProbe):
    """Probe that records selection prompts."""

    def __init__(self, selected: bool = True, error: Optional[Exception] = None) -> None:
        self.selected = selected
        self.error = error
        self.prompts = 0

    async def has_selected_key(self) -> bool:
        if self.error:
            raise self.error
        return self.selected

    async def open_select_key(self) -> None:
        self.prompts += 1
        self.selected = True


@pytest.fixture
def client():
    """Scriptable generation client."""
    return FakeGenerationClient()


@pytest.fixture
def storage(tmp_path):
    """Durable storage in a temporary directory."""
    return LocalStorage(tmp_path / "storage")


@pytest.fixture
def store(client, storage):
    """Project store backed by the fake client."""
    return ProjectStore(ProducerAgent(client), storage)


@pytest.fixture
def media(tmp_path):
    """Media store in a temporary directory."""
    return MediaStore(tmp_path / "media")


@pytest.fixture
def controller(client, store, media):
    """Asset controller that polls without waiting."""
    return AssetLifecycleController(client, store, media, poll_interval=0, max_poll_time=60)
