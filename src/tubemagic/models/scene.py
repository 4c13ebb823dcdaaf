"""Scene data model."""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ImageSize(str, Enum):
    """Resolution tier for scene images."""
    K1 = "1K"
    K2 = "2K"
    K4 = "4K"

    @property
    def label(self) -> str:
        return {"1K": "standard", "2K": "high", "4K": "ultra"}[self.value]


class AssetKind(str, Enum):
    """Kind of media a scene can hold."""
    IMAGE = "image"
    VIDEO = "video"


class ImageOutput(BaseModel):
    """Generated still image for a scene."""
    kind: Literal["image"] = "image"
    uri: str


class VideoOutput(BaseModel):
    """Generated video clip for a scene."""
    kind: Literal["video"] = "video"
    uri: str


SceneOutput = Annotated[Union[ImageOutput, VideoOutput], Field(discriminator="kind")]


class Scene(BaseModel):
    """One narration unit paired with a visual prompt and optional media."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Stable scene identifier")
    text: str = Field(..., description="Narration sentence from the script")
    visual_prompt: str = Field(..., description="Prompt for image or video generation")
    output: Optional[SceneOutput] = Field(None, description="Most recent generated media")
    pending: Optional[AssetKind] = Field(None, exclude=True, description="Kind of request in flight")
    error: Optional[str] = Field(None, exclude=True, description="Last failure message")

    @property
    def image_url(self) -> Optional[str]:
        return self.output.uri if isinstance(self.output, ImageOutput) else None

    @property
    def video_url(self) -> Optional[str]:
        return self.output.uri if isinstance(self.output, VideoOutput) else None

    @property
    def is_generating_image(self) -> bool:
        return self.pending == AssetKind.IMAGE

    @property
    def is_generating_video(self) -> bool:
        return self.pending == AssetKind.VIDEO
