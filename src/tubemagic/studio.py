"""Wiring of the studio components around one generation client."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .agents import ChatSession, ProducerAgent
from .assets import AssetLifecycleController
from .config import Config, config
from .media import MediaStore
from .services import CredentialProbe, GenerationClient, GoogleCredentialProbe, VertexGenerationClient
from .store import LocalStorage, ProjectStore

logger = logging.getLogger(__name__)


@dataclass
class Studio:
    """The studio's collaborators, all sharing a single client instance."""

    client: GenerationClient
    store: ProjectStore
    assets: AssetLifecycleController
    chat: ChatSession

    @classmethod
    def create(
        cls,
        client: GenerationClient,
        settings: Config = config,
        credentials: Optional[CredentialProbe] = None,
    ) -> "Studio":
        """Build the studio around an existing client and load history."""
        store = ProjectStore(
            ProducerAgent(client),
            LocalStorage(settings.storage_dir),
            history_limit=settings.history_limit,
        )
        store.load_history()

        assets = AssetLifecycleController(
            client,
            store,
            MediaStore(settings.media_dir),
            credentials=credentials,
            poll_interval=settings.video_poll_interval,
            max_poll_time=settings.video_max_poll_time,
        )
        return cls(client=client, store=store, assets=assets, chat=ChatSession(client))

    @classmethod
    def from_config(
        cls,
        settings: Config = config,
        credential_prompt: Optional[Callable[[], Optional[str]]] = None,
    ) -> "Studio":
        """Build the studio on Vertex AI.

        Raises:
            ValueError: If required configuration is missing.
        """
        settings.validate_required()
        client = VertexGenerationClient(
            project_id=settings.google_cloud_project,
            location=settings.google_cloud_location,
            text_model=settings.text_model,
            image_model=settings.image_model,
            video_model=settings.video_model,
            output_bucket=settings.video_output_bucket,
        )
        logger.info(f"Studio connected to Vertex AI project {client.project_id}")
        return cls.create(client, settings, GoogleCredentialProbe(credential_prompt))
