"""Current project, recent history and their durable storage."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from .agents.producer import ProducerAgent
from .models import Project, Scene

logger = logging.getLogger(__name__)

HISTORY_KEY = "tubemagic_projects"
DEFAULT_HISTORY_LIMIT = 15

ProjectListener = Callable[[Optional[Project]], None]


class LocalStorage:
    """Durable key-value slots, one JSON file per key."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        return self._root / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        """Replace the slot contents atomically."""
        self._root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class ProjectStore:
    """Holds the current project and the bounded most-recent-first history.

    History entries are snapshots: mutating the current project never changes
    a stored entry until it is saved again.
    """

    def __init__(
        self,
        producer: Optional[ProducerAgent],
        storage: LocalStorage,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        if history_limit <= 0:
            raise ValueError("history_limit must be positive")
        self._producer = producer
        self._storage = storage
        self._history_limit = history_limit
        self._history: List[Project] = []
        self._current: Optional[Project] = None
        self._listeners: List[ProjectListener] = []

    @property
    def current(self) -> Optional[Project]:
        return self._current

    @property
    def history(self) -> List[Project]:
        return list(self._history)

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def add_listener(self, listener: ProjectListener) -> None:
        """Register a callback invoked whenever the current project changes."""
        self._listeners.append(listener)

    def require_current(self) -> Project:
        if self._current is None:
            raise ValueError("No project loaded")
        return self._current

    def is_current(self, project_id: str) -> bool:
        return self._current is not None and self._current.id == project_id

    async def create_project(self, prompt: str) -> Project:
        """Produce a new project from a prompt and make it current.

        Raises:
            ValueError: If the prompt is blank.
            GenerationError: If the package could not be produced. The current
                project is left untouched.
        """
        topic = prompt.strip()
        if not topic:
            raise ValueError("Prompt cannot be empty")

        if self._producer is None:
            raise RuntimeError("No producer configured for this store")

        project = await self._producer.run(topic)
        self._set_current(project)
        self.save_to_history(project)
        return project

    def select(self, project_id: str) -> Project:
        """Load a history entry as the current project."""
        for entry in self._history:
            if entry.id == project_id:
                project = entry.model_copy(deep=True)
                self._set_current(project)
                return project
        raise KeyError(f"Unknown project: {project_id}")

    def reset(self) -> None:
        """Discard the current project. History is kept."""
        self._set_current(None)

    def update_scene(self, project_id: str, scene_id: str, **changes: Any) -> Scene:
        """Merge field changes into one scene of the current project.

        The scene is located by id, so concurrent updates to other scenes are
        preserved.
        """
        project = self.require_current()
        if project.id != project_id:
            raise KeyError(f"Project {project_id} is not loaded")

        for index, scene in enumerate(project.scenes):
            if scene.id == scene_id:
                updated = scene.model_copy(update=changes)
                project.scenes[index] = updated
                return updated
        raise KeyError(f"Unknown scene: {scene_id}")

    def save_to_history(self, project: Project) -> None:
        """Insert a snapshot at the front, replacing any entry with the same id."""
        snapshot = project.snapshot()
        remaining = [entry for entry in self._history if entry.id != snapshot.id]
        self._history = ([snapshot] + remaining)[: self._history_limit]
        self._persist()

    def save_current(self) -> None:
        self.save_to_history(self.require_current())

    def load_history(self) -> List[Project]:
        """Read the stored history. Missing or malformed data yields an empty list."""
        self._history = []

        try:
            raw = self._storage.get_item(HISTORY_KEY)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read history: {e}")
            return []

        if raw is None:
            return []

        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed history: {e}")
            return []

        if not isinstance(entries, list):
            logger.warning("Ignoring history that is not a list")
            return []

        projects: List[Project] = []
        seen: set[str] = set()
        for entry in entries:
            try:
                project = Project.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable history entry: {e.error_count()} error(s)")
                continue
            if project.id in seen:
                continue
            seen.add(project.id)
            projects.append(project)

        self._history = projects[: self._history_limit]
        logger.info(f"Loaded {len(self._history)} project(s) from history")
        return list(self._history)

    def _persist(self) -> None:
        payload = json.dumps([entry.model_dump(mode="json") for entry in self._history])
        try:
            self._storage.set_item(HISTORY_KEY, payload)
        except OSError as e:
            logger.error(f"Failed to persist history: {e}")

    def _set_current(self, project: Optional[Project]) -> None:
        self._current = project
        for listener in self._listeners:
            listener(project)
