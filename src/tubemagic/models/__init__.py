"""Data models for the production studio."""

from .scene import AssetKind, ImageOutput, ImageSize, Scene, SceneOutput, VideoOutput
from .project import Project
from .chat import ChatMessage, ChatRole

__all__ = [
    "AssetKind",
    "ChatMessage",
    "ChatRole",
    "ImageOutput",
    "ImageSize",
    "Project",
    "Scene",
    "SceneOutput",
    "VideoOutput",
]
