"""Configuration management."""

import os
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config(BaseModel):
    """Application configuration."""

    # Google Cloud
    google_application_credentials: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_APPLICATION_CREDENTIALS", ""),
        description="Path to Google Cloud service account JSON"
    )
    google_cloud_project: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""),
        description="Google Cloud project ID"
    )
    google_cloud_location: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        description="Vertex AI region"
    )
    video_output_bucket: str = Field(
        default_factory=lambda: os.getenv("TUBEMAGIC_VIDEO_BUCKET", ""),
        description="Optional GCS bucket for generated videos"
    )

    # Paths
    workspace: Path = Field(
        default_factory=lambda: Path(os.getenv("TUBEMAGIC_WORKSPACE", ".")),
        description="Workspace directory"
    )

    # Model settings
    text_model: str = Field(
        default_factory=lambda: os.getenv("TUBEMAGIC_TEXT_MODEL", "gemini-3-pro-preview"),
        description="Model for scripts, metadata and chat"
    )
    image_model: str = Field(
        default_factory=lambda: os.getenv("TUBEMAGIC_IMAGE_MODEL", "gemini-3-pro-image-preview"),
        description="Model for scene images"
    )
    video_model: str = Field(
        default_factory=lambda: os.getenv("TUBEMAGIC_VIDEO_MODEL", "veo-3.1-fast-generate-preview"),
        description="Model for scene videos"
    )

    # Lifecycle settings
    history_limit: int = Field(default=15, description="Maximum projects kept in history", gt=0)
    video_poll_interval: float = Field(default=5.0, description="Seconds between video job polls", ge=0)
    video_max_poll_time: float = Field(default=600.0, description="Maximum seconds to wait for a video job", gt=0)

    @property
    def storage_dir(self) -> Path:
        """Directory holding the durable key-value slots."""
        return self.workspace / ".tubemagic"

    @property
    def media_dir(self) -> Path:
        """Directory holding generated images and videos."""
        return self.workspace / "media"

    def validate_required(self) -> None:
        """Validate that Vertex AI settings are present.

        Raises:
            ValueError: If any required setting is missing or malformed.
        """
        missing: list[str] = []

        if not self.google_cloud_project:
            missing.append("GOOGLE_CLOUD_PROJECT")
        if not self.google_cloud_location:
            missing.append("GOOGLE_CLOUD_LOCATION")

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Set the corresponding environment variables."
            )

        if self.video_output_bucket and not self.video_output_bucket.startswith("gs://"):
            raise ValueError(
                f"TUBEMAGIC_VIDEO_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self.video_output_bucket}"
            )


# Global config instance
config = Config()
