"""Credential probe and selection hook."""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import google.auth
from google.auth import exceptions as auth_exceptions

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class CredentialProbe(ABC):
    """Checks whether a service credential is selected and asks for one."""

    @abstractmethod
    async def has_selected_key(self) -> bool:
        ...

    @abstractmethod
    async def open_select_key(self) -> None:
        ...


class GoogleCredentialProbe(CredentialProbe):
    """Probe backed by Google application default credentials.

    A credential counts as selected when ``google.auth.default`` resolves.
    Selection asks the host for a service account file through ``prompt``
    and exports it as ``GOOGLE_APPLICATION_CREDENTIALS``.
    """

    def __init__(self, prompt: Optional[Callable[[], Optional[str]]] = None) -> None:
        self._prompt = prompt

    async def has_selected_key(self) -> bool:
        return await asyncio.to_thread(self._resolve)

    def _resolve(self) -> bool:
        try:
            google.auth.default(scopes=SCOPES)
            return True
        except auth_exceptions.DefaultCredentialsError as e:
            logger.debug(f"No default credentials: {e}")
            return False

    async def open_select_key(self) -> None:
        if self._prompt is None:
            logger.warning("No credential selected and no selection hook available")
            return

        selected = await asyncio.to_thread(self._prompt)
        if not selected:
            logger.info("Credential selection skipped")
            return

        path = Path(selected).expanduser()
        if not path.exists():
            logger.warning(f"Credential file not found: {path}")
            return

        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(path)
        logger.info(f"Selected credential file {path}")
