"""Producer agent: turns one prompt into a full production package."""

from typing import Any

from pydantic import ValidationError

from ..errors import GenerationError
from ..models import Project
from .base import BaseAgent

SYSTEM_INSTRUCTION = """You are an all-in-one AI YouTube automation system.
Your task is to create a COMPLETE, ORIGINAL, and YOUTUBE-SAFE video package from ONE user prompt.
Always return response in JSON format matching the requested schema.
Return scenes as an array of objects where each object has "text" (the sentence from the script) and "visualPrompt" (cinematic, vertical 9:16 description).
Follow the specific format for script (45-60s), VO instructions with tone tags, and punchy subtitles."""

REQUIRED_FIELDS = [
    "script",
    "voiceOver",
    "scenes",
    "subtitles",
    "musicStyle",
    "youtubeTitle",
    "youtubeDescription",
    "tags",
    "hashtags",
    "thumbnailText",
]

PACKAGE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "script": {"type": "STRING"},
        "voiceOver": {"type": "STRING"},
        "scenes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "text": {"type": "STRING"},
                    "visualPrompt": {"type": "STRING"},
                },
                "required": ["text", "visualPrompt"],
            },
        },
        "subtitles": {"type": "STRING"},
        "musicStyle": {"type": "STRING"},
        "youtubeTitle": {"type": "STRING"},
        "youtubeDescription": {"type": "STRING"},
        "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
        "hashtags": {"type": "ARRAY", "items": {"type": "STRING"}},
        "thumbnailText": {"type": "STRING"},
    },
    "required": REQUIRED_FIELDS,
}


class ProducerAgent(BaseAgent[str, Project]):
    """Agent for generating a production package from a topic.

    The remote model returns script, voice-over guidance, scenes and SEO
    metadata in one schema-constrained call; the agent validates it into a
    Project or fails as a whole.
    """

    @property
    def name(self) -> str:
        return "ProducerAgent"

    @property
    def system_prompt(self) -> str:
        return SYSTEM_INSTRUCTION

    async def run(self, input_data: str) -> Project:
        """Generate a project for the given topic.

        Raises:
            GenerationError: If the remote call fails or the payload does not
                match the package schema.
        """
        self._logger.info(f"Producing package for: '{input_data}'")

        try:
            payload = await self._client.generate_structured_content(
                prompt=input_data,
                schema=PACKAGE_SCHEMA,
                system_instruction=self.system_prompt,
            )
        except Exception as e:
            self._logger.error(f"Package generation failed: {e}")
            raise GenerationError(str(e)) from e

        if not isinstance(payload, dict):
            raise GenerationError("Package response is not a JSON object")

        try:
            project = Project.from_package(payload, topic=input_data)
        except ValidationError as e:
            self._logger.error(f"Package does not match schema: {e.error_count()} error(s)")
            self._logger.debug(f"Raw payload: {payload}")
            raise GenerationError(f"Incomplete package: {e}") from e

        self._logger.info(f"Produced project {project.id} with {len(project.scenes)} scenes")
        return project
