"""External service integrations."""

from .base import GenerationClient, VideoJob
from .credentials import CredentialProbe, GoogleCredentialProbe
from .vertex import VertexGenerationClient

__all__ = [
    "CredentialProbe",
    "GenerationClient",
    "GoogleCredentialProbe",
    "VertexGenerationClient",
    "VideoJob",
]
