"""Per-scene image and video generation lifecycle."""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .errors import AssetError, StaleCredentialError, VideoJobTimeoutError
from .media import MediaStore
from .models import AssetKind, ImageOutput, ImageSize, Project, Scene, VideoOutput
from .services.base import GenerationClient, VideoJob
from .services.credentials import CredentialProbe
from .store import ProjectStore

logger = logging.getLogger(__name__)


class AssetStatus(str, Enum):
    """Outcome of a scene asset request."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"


@dataclass
class AssetResult:
    """Result of one image or video request for a scene."""

    scene_id: str
    kind: AssetKind
    token: int
    status: AssetStatus = AssetStatus.PENDING
    output_uri: Optional[str] = None
    error: Optional[AssetError] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass
class _Ticket:
    project_id: str
    scene_id: str
    kind: AssetKind
    token: int
    selection: int = 0
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def key(self) -> tuple[str, str]:
        return (self.project_id, self.scene_id)


class AssetLifecycleController:
    """Drives per-scene generation requests and merges their outcomes.

    Each scene moves Idle -> Pending -> Completed | Failed | Cancelled. A scene
    holds a single output, so a new image request clears a stored video and a
    new video request clears a stored image.

    Every request gets a token; when two requests for the same scene overlap
    the last one issued wins and the earlier completion is discarded as
    superseded. Loading another project cancels everything in flight.
    """

    DEFAULT_POLL_INTERVAL = 5.0  # seconds
    DEFAULT_MAX_POLL_TIME = 600.0  # 10 minutes

    def __init__(
        self,
        client: GenerationClient,
        store: ProjectStore,
        media: MediaStore,
        credentials: Optional[CredentialProbe] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_time: float = DEFAULT_MAX_POLL_TIME,
        max_poll_attempts: Optional[int] = None,
    ) -> None:
        """Initialize the controller.

        Args:
            client: Generation client shared with the rest of the studio.
            store: Store owning the current project and history.
            media: Where generated bytes are written.
            credentials: Optional probe run before each request.
            poll_interval: Seconds between video job polls.
            max_poll_time: Maximum seconds to wait for a video job.
            max_poll_attempts: Optional cap on the number of polls.
        """
        self._client = client
        self._store = store
        self._media = media
        self._credentials = credentials
        self._poll_interval = poll_interval
        self._max_poll_time = max_poll_time
        self._max_poll_attempts = max_poll_attempts
        self._tokens = itertools.count(1)
        self._tickets: dict[tuple[str, str], _Ticket] = {}
        self._credential_lock = asyncio.Lock()
        self._selections = 0

        store.add_listener(self._on_project_changed)

    # -- public operations ------------------------------------------------------

    async def request_image(self, scene_id: str, size: ImageSize = ImageSize.K1) -> AssetResult:
        """Generate an image for a scene of the current project.

        Raises:
            ValueError: If no project is loaded.
            KeyError: If the scene does not exist.
        """
        size = ImageSize(size)
        self._resolve_scene(scene_id)
        await self._check_credentials()
        project, scene = self._resolve_scene(scene_id)

        ticket, result = self._begin(project, scene, AssetKind.IMAGE)
        logger.info(f"Requesting {size.value} image for {scene_id} (token {ticket.token})")

        try:
            return await self._run_image(ticket, result, scene.visual_prompt, size)
        finally:
            self._release(ticket)

    async def request_video(self, scene_id: str) -> AssetResult:
        """Generate a video for a scene of the current project.

        Submits a job, polls it every ``poll_interval`` seconds until it is
        done, then downloads the result.

        Raises:
            ValueError: If no project is loaded.
            KeyError: If the scene does not exist.
        """
        self._resolve_scene(scene_id)
        await self._check_credentials()
        project, scene = self._resolve_scene(scene_id)

        ticket, result = self._begin(project, scene, AssetKind.VIDEO)
        logger.info(f"Requesting video for {scene_id} (token {ticket.token})")

        try:
            return await self._run_video(ticket, result, scene.visual_prompt)
        finally:
            self._release(ticket)

    async def generate_all(
        self,
        size: Optional[ImageSize] = None,
        video: bool = False,
    ) -> list[AssetResult]:
        """Request an asset for every scene concurrently, results in scene order."""
        project = self._store.require_current()
        if video:
            requests = [self.request_video(scene.id) for scene in project.scenes]
        else:
            tier = ImageSize(size) if size else ImageSize.K1
            requests = [self.request_image(scene.id, tier) for scene in project.scenes]
        return list(await asyncio.gather(*requests))

    def cancel(self, scene_id: str) -> bool:
        """Cancel the in-flight request for a scene of the current project."""
        project = self._store.current
        if project is None:
            return False
        ticket = self._tickets.get((project.id, scene_id))
        if ticket is None:
            return False
        logger.info(f"Cancelling {ticket.kind.value} request for {scene_id}")
        ticket.cancel_event.set()
        return True

    def cancel_all(self) -> int:
        """Cancel every in-flight request. Returns how many were signalled."""
        for ticket in self._tickets.values():
            ticket.cancel_event.set()
        return len(self._tickets)

    def in_flight(self, scene_id: str) -> Optional[AssetKind]:
        project = self._store.current
        if project is None:
            return None
        ticket = self._tickets.get((project.id, scene_id))
        return ticket.kind if ticket else None

    # -- lifecycle steps ------------------------------------------------------

    def _resolve_scene(self, scene_id: str) -> tuple[Project, Scene]:
        project = self._store.require_current()
        return project, project.scene(scene_id)

    def _begin(self, project: Project, scene: Scene, kind: AssetKind) -> tuple[_Ticket, AssetResult]:
        ticket = _Ticket(project.id, scene.id, kind, next(self._tokens), selection=self._selections)

        previous = self._tickets.get(ticket.key)
        if previous is not None:
            logger.info(
                f"Superseding {previous.kind.value} request {previous.token} for {scene.id}"
            )
            previous.cancel_event.set()
        self._tickets[ticket.key] = ticket

        changes: dict = {"pending": kind, "error": None}
        opposite = VideoOutput if kind == AssetKind.IMAGE else ImageOutput
        if isinstance(scene.output, opposite):
            changes["output"] = None
        self._store.update_scene(project.id, scene.id, **changes)

        result = AssetResult(
            scene_id=scene.id,
            kind=kind,
            token=ticket.token,
            started_at=datetime.now(),
        )
        return ticket, result

    async def _run_image(
        self, ticket: _Ticket, result: AssetResult, prompt: str, size: ImageSize
    ) -> AssetResult:
        try:
            content = await self._client.generate_image(prompt, size)
        except Exception as e:
            return await self._fail(ticket, result, e)

        return await self._complete(ticket, result, content)

    async def _run_video(self, ticket: _Ticket, result: AssetResult, prompt: str) -> AssetResult:
        try:
            job = await self._client.start_video(prompt)
            job = await self._wait_for_job(ticket, job)
            if job is None:
                return self._cancelled(ticket, result)

            if job.error_message:
                return await self._fail(
                    ticket, result, AssetError(ticket.scene_id, AssetKind.VIDEO.value, job.error_message)
                )
            if not job.result_uri:
                return await self._fail(
                    ticket,
                    result,
                    AssetError(ticket.scene_id, AssetKind.VIDEO.value, "job finished without a video reference"),
                )

            content = await self._client.fetch_video(job.result_uri)
        except Exception as e:
            return await self._fail(ticket, result, e)

        return await self._complete(ticket, result, content)

    def _release(self, ticket: _Ticket) -> None:
        """Clear a request that ended without settling, e.g. when its task was cancelled."""
        if not self._is_live(ticket):
            return
        logger.info(f"Abandoned {ticket.kind.value} request {ticket.token} for {ticket.scene_id}")
        self._settle(ticket)

    async def _wait_for_job(self, ticket: _Ticket, job: VideoJob) -> Optional[VideoJob]:
        """Poll a video job until it is done. Returns None when cancelled."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._max_poll_time
        attempts = 0

        while not job.done and not job.error_message:
            if ticket.cancel_event.is_set():
                return None

            if loop.time() >= deadline or (
                self._max_poll_attempts is not None and attempts >= self._max_poll_attempts
            ):
                logger.warning(f"Video job {job.name} timed out after {attempts} poll(s)")
                raise VideoJobTimeoutError(
                    ticket.scene_id,
                    AssetKind.VIDEO.value,
                    f"job {job.name} did not finish after {attempts} poll(s)",
                )

            if await self._wait_or_cancel(ticket):
                return None

            attempts += 1
            logger.debug(f"Polling video job (attempt {attempts}): {job.name}")
            job = await self._client.poll_video(job)

        return job

    async def _wait_or_cancel(self, ticket: _Ticket) -> bool:
        try:
            await asyncio.wait_for(ticket.cancel_event.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    def _is_live(self, ticket: _Ticket) -> bool:
        return self._tickets.get(ticket.key) is ticket and self._store.is_current(ticket.project_id)

    def _superseded(self, ticket: _Ticket, result: AssetResult) -> AssetResult:
        logger.info(f"Discarding {ticket.kind.value} result {ticket.token} for {ticket.scene_id}")
        result.status = AssetStatus.SUPERSEDED
        result.completed_at = datetime.now()
        return result

    def _settle(self, ticket: _Ticket, **changes) -> Scene:
        del self._tickets[ticket.key]
        return self._store.update_scene(ticket.project_id, ticket.scene_id, pending=None, **changes)

    async def _complete(self, ticket: _Ticket, result: AssetResult, content: bytes) -> AssetResult:
        if not self._is_live(ticket):
            return self._superseded(ticket, result)
        if ticket.cancel_event.is_set():
            return self._cancelled(ticket, result)

        try:
            uri = self._media.save(ticket.project_id, ticket.scene_id, ticket.kind, ticket.token, content)
        except OSError as e:
            return await self._fail(ticket, result, e)

        output = ImageOutput(uri=uri) if ticket.kind == AssetKind.IMAGE else VideoOutput(uri=uri)
        self._settle(ticket, output=output, error=None)
        self._store.save_current()

        logger.info(f"Stored {ticket.kind.value} for {ticket.scene_id}: {uri}")
        result.status = AssetStatus.COMPLETED
        result.output_uri = uri
        result.completed_at = datetime.now()
        return result

    def _cancelled(self, ticket: _Ticket, result: AssetResult) -> AssetResult:
        if not self._is_live(ticket):
            return self._superseded(ticket, result)

        self._settle(ticket)
        logger.info(f"Cancelled {ticket.kind.value} request for {ticket.scene_id}")
        result.status = AssetStatus.CANCELLED
        result.completed_at = datetime.now()
        return result

    async def _fail(self, ticket: _Ticket, result: AssetResult, exc: Exception) -> AssetResult:
        if isinstance(exc, AssetError):
            error = exc
        else:
            error = AssetError(ticket.scene_id, ticket.kind.value, str(exc))
            error.__cause__ = exc
        logger.error(f"{ticket.kind.value.capitalize()} generation failed for {ticket.scene_id}: {exc}")

        if isinstance(exc, StaleCredentialError) and self._credentials is not None:
            async with self._credential_lock:
                # Concurrent failures share one selection.
                if self._selections == ticket.selection:
                    await self._select_key()

        if not self._is_live(ticket):
            return self._superseded(ticket, result)

        self._settle(ticket, error=error.reason)
        result.status = AssetStatus.FAILED
        result.error = error
        result.completed_at = datetime.now()
        return result

    async def _check_credentials(self) -> None:
        if self._credentials is None:
            return
        async with self._credential_lock:
            try:
                selected = await self._credentials.has_selected_key()
            except Exception as e:
                logger.warning(f"Credential check failed: {e}")
                return
            if not selected:
                await self._select_key()

    async def _select_key(self) -> None:
        """Ask the host for a credential. Callers hold the credential lock."""
        self._selections += 1
        try:
            await self._credentials.open_select_key()
        except Exception as e:
            logger.warning(f"Credential selection failed: {e}")

    def _on_project_changed(self, project: Optional[Project]) -> None:
        if self._tickets:
            logger.info(f"Project changed, cancelling {len(self._tickets)} request(s)")
        for ticket in self._tickets.values():
            ticket.cancel_event.set()
        self._tickets.clear()
