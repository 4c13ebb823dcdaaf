"""Local files for generated scene media."""

import logging
import re
from pathlib import Path

from .models import AssetKind

logger = logging.getLogger(__name__)


def _safe_name(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9._-]+", "_", value.strip()) or "item"


def image_extension(content: bytes) -> str:
    if content.startswith(b"\x89PNG"):
        return ".png"
    if content.startswith(b"\xff\xd8"):
        return ".jpg"
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return ".webp"
    return ".png"


class MediaStore:
    """Writes generated bytes under ``root/<project>/<scene>-<kind>-<token>``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def scene_path(self, project_id: str, scene_id: str, kind: AssetKind, token: int, ext: str) -> Path:
        p = self._root / _safe_name(project_id)
        p.mkdir(parents=True, exist_ok=True)
        return p / f"{_safe_name(scene_id)}-{AssetKind(kind).value}-{token}{ext}"

    def save(self, project_id: str, scene_id: str, kind: AssetKind, token: int, content: bytes) -> str:
        """Write media bytes and return the local path used as its reference."""
        ext = image_extension(content) if kind == AssetKind.IMAGE else ".mp4"
        path = self.scene_path(project_id, scene_id, kind, token, ext)
        path.write_bytes(content)
        logger.debug(f"Saved {len(content)} bytes to {path}")
        return str(path)
