"""Project (automation package) data model."""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, List

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .scene import Scene


class Project(BaseModel):
    """The full generated bundle for one user prompt."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Project identifier")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    topic: str = Field(default="", description="Prompt the project was produced from")
    script: str = Field(..., min_length=1, description="Full narration script")
    voice_over: str = Field(..., description="Voice-over guidance with tone tags")
    scenes: List[Scene] = Field(..., min_length=1, description="Scenes in narration order")
    subtitles: str = Field(..., description="Subtitle text")
    music_style: str = Field(..., description="Background music style")
    youtube_title: str = Field(..., description="Video title")
    youtube_description: str = Field(..., description="Video description")
    tags: List[str] = Field(..., min_length=1, description="SEO tags")
    hashtags: List[str] = Field(..., description="Hashtags")
    thumbnail_text: str = Field(..., description="Thumbnail headline")

    @classmethod
    def from_package(cls, payload: dict[str, Any], topic: str = "") -> "Project":
        """Build a project from a generated package payload.

        Identifiers are always assigned here: any id or timestamp in the
        payload is ignored and scenes are numbered in array order.

        Raises:
            pydantic.ValidationError: If the payload does not match the schema.
        """
        data = {
            key: value for key, value in payload.items()
            if key not in ("id", "createdAt", "created_at", "topic")
        }
        scenes = data.get("scenes")
        if isinstance(scenes, list):
            data["scenes"] = [
                {**scene, "id": f"scene-{i}"} if isinstance(scene, dict) else scene
                for i, scene in enumerate(scenes)
            ]
        data["topic"] = topic
        return cls.model_validate(data)

    def scene(self, scene_id: str) -> Scene:
        """Return the scene with the given id."""
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        raise KeyError(f"Unknown scene: {scene_id}")

    def snapshot(self) -> "Project":
        """Return a deep copy without in-flight request state."""
        copy = self.model_copy(deep=True)
        for scene in copy.scenes:
            scene.pending = None
            scene.error = None
        return copy

    def to_yaml(self, path: Path) -> None:
        """Save the production package to a YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
