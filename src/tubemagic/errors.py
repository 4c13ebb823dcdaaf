"""Error taxonomy for production, asset and chat failures."""

from typing import Optional


class TubeMagicError(Exception):
    """Base class for all TubeMagic errors."""


class RemoteServiceError(TubeMagicError):
    """A call to the generation service failed or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StaleCredentialError(RemoteServiceError):
    """The selected credential no longer resolves to a usable project or key.

    Raised when the service answers with its "Requested entity was not found"
    signature; the fix is to select a credential again.
    """


class GenerationError(TubeMagicError):
    """The production package could not be generated or parsed."""

    user_message = "Automation sequence interrupted. Please try a different topic."


class AssetError(TubeMagicError):
    """A per-scene image or video request failed."""

    def __init__(self, scene_id: str, kind: str, message: str) -> None:
        super().__init__(f"{kind} generation failed for {scene_id}: {message}")
        self.scene_id = scene_id
        self.kind = kind
        self.reason = message


class VideoJobTimeoutError(AssetError, TimeoutError):
    """A video job did not finish within the polling budget."""


class ChatError(TubeMagicError):
    """The assistant could not answer a chat turn."""
