"""Gemini and Veo generation client via the Vertex AI REST API."""

import asyncio
import base64
import json
import logging
from typing import Any, Optional, Sequence

import google.auth
import google.auth.transport.requests
import requests
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from ..config import config
from ..errors import RemoteServiceError, StaleCredentialError
from ..models import ChatMessage, ImageSize
from .base import GenerationClient, VideoJob
from .credentials import SCOPES

logger = logging.getLogger(__name__)

STALE_CREDENTIAL_SIGNATURE = "requested entity was not found"


class VertexGenerationClient(GenerationClient):
    """Client for Gemini text/image generation and Veo video jobs on Vertex AI.

    This client handles:
    - Schema-constrained JSON generation and multi-turn chat with Gemini
    - Image generation with a selectable resolution tier
    - Submitting Veo jobs and fetching their operation state
    - Downloading finished videos from GCS or inline payloads

    The HTTP calls are blocking and run in worker threads so callers on the
    event loop are never blocked.
    """

    DEFAULT_TIMEOUT = 120.0  # seconds
    ASPECT_RATIO = "9:16"
    IMAGE_STYLE_SUFFIX = (
        "Cinematic, hyper-realistic, high resolution, professional lighting, "
        "9:16 vertical aspect ratio."
    )
    EMPTY_CHAT_REPLY = "Sorry, I couldn't generate a response."

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        text_model: Optional[str] = None,
        image_model: Optional[str] = None,
        video_model: Optional[str] = None,
        output_bucket: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the client.

        Args:
            project_id: Google Cloud project ID. Defaults to GOOGLE_CLOUD_PROJECT env var.
            location: Vertex AI region, or 'global'. Defaults to GOOGLE_CLOUD_LOCATION.
            text_model: Gemini model for structured content and chat.
            image_model: Gemini model for scene images.
            video_model: Veo model for scene videos.
            output_bucket: Optional gs:// prefix Veo writes videos to. When unset
                videos come back inline.
            timeout: Per-request HTTP timeout in seconds.
            session: HTTP session, mainly for tests.
        """
        self._project_id = project_id or config.google_cloud_project
        self._location = location or config.google_cloud_location
        self._text_model = text_model or config.text_model
        self._image_model = image_model or config.image_model
        self._video_model = video_model or config.video_model
        self._output_bucket = output_bucket if output_bucket is not None else config.video_output_bucket
        self._timeout = timeout
        self._session = session or requests.Session()
        self._credentials = None
        self._storage_client: Optional[storage.Client] = None

        if not self._project_id:
            raise ValueError("GOOGLE_CLOUD_PROJECT not set")

        if self._output_bucket and not self._output_bucket.startswith("gs://"):
            raise ValueError(
                f"Output bucket must be a GCS URI starting with 'gs://'. Got: {self._output_bucket}"
            )

    @property
    def project_id(self) -> str:
        return self._project_id

    # -- async contract ---------------------------------------------------

    async def generate_structured_content(
        self,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: Optional[str] = None,
    ) -> dict[str, Any]:
        return await asyncio.to_thread(
            self._generate_structured_content, prompt, schema, system_instruction
        )

    async def generate_image(self, prompt: str, size: ImageSize) -> bytes:
        return await asyncio.to_thread(self._generate_image, prompt, size)

    async def start_video(self, prompt: str) -> VideoJob:
        return await asyncio.to_thread(self._start_video, prompt)

    async def poll_video(self, job: VideoJob) -> VideoJob:
        return await asyncio.to_thread(self._poll_video, job)

    async def fetch_video(self, uri: str) -> bytes:
        return await asyncio.to_thread(self._fetch_video, uri)

    async def chat(
        self,
        message: str,
        history: Sequence[ChatMessage],
        system_instruction: Optional[str] = None,
    ) -> str:
        return await asyncio.to_thread(self._chat, message, list(history), system_instruction)

    # -- blocking implementations -------------------------------------------

    def _generate_structured_content(
        self,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: Optional[str],
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        logger.info(f"Generating structured content with {self._text_model}")
        data = self._post(self._text_model, "generateContent", body)
        text = self._extract_text(data)
        logger.debug(f"Received structured response of length: {len(text)}")

        try:
            parsed = json.loads(_extract_json(text))
        except json.JSONDecodeError as e:
            raise RemoteServiceError(f"Invalid JSON in response: {e}") from e

        if not isinstance(parsed, dict):
            raise RemoteServiceError("Structured response is not a JSON object")
        return parsed

    def _generate_image(self, prompt: str, size: ImageSize) -> bytes:
        body = {
            "contents": [
                {"role": "user", "parts": [{"text": f"{prompt}. {self.IMAGE_STYLE_SUFFIX}"}]}
            ],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {
                    "aspectRatio": self.ASPECT_RATIO,
                    "imageSize": ImageSize(size).value,
                },
            },
        }

        logger.info(f"Generating {ImageSize(size).value} image: {prompt[:50]}...")
        data = self._post(self._image_model, "generateContent", body)

        candidates = data.get("candidates") or []
        if not candidates:
            raise RemoteServiceError("No candidates returned from image generation.")

        for part in candidates[0].get("content", {}).get("parts", []):
            inline = part.get("inlineData")
            if inline and inline.get("data"):
                return base64.b64decode(inline["data"])

        raise RemoteServiceError("No image data found in response.")

    def _start_video(self, prompt: str) -> VideoJob:
        parameters: dict[str, Any] = {
            "aspectRatio": self.ASPECT_RATIO,
            "sampleCount": 1,
        }
        if self._output_bucket:
            parameters["storageUri"] = self._output_bucket.rstrip("/") + "/"

        body = {"instances": [{"prompt": prompt}], "parameters": parameters}

        logger.info(f"Starting video job with {self._video_model}: {prompt[:50]}...")
        data = self._post(self._video_model, "predictLongRunning", body)

        name = data.get("name")
        if not name:
            raise RemoteServiceError("Video job submission returned no operation name")

        logger.debug(f"Video job started: {name}")
        return VideoJob(name=name)

    def _poll_video(self, job: VideoJob) -> VideoJob:
        data = self._post(
            self._video_model, "fetchPredictOperation", {"operationName": job.name}
        )
        return _parse_operation(job.name, data)

    def _fetch_video(self, uri: str) -> bytes:
        if uri.startswith("data:"):
            _, _, encoded = uri.partition(",")
            return base64.b64decode(encoded)

        if uri.startswith("gs://"):
            return self._download_from_gcs(uri)

        logger.info(f"Downloading video from {uri}")
        try:
            response = self._session.get(
                uri,
                headers={"Authorization": f"Bearer {self._access_token()}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise RemoteServiceError(f"Video download failed: {e}") from e

        if response.status_code != 200:
            raise RemoteServiceError(
                f"Video download failed: {response.status_code}", response.status_code
            )
        return response.content

    def _chat(
        self,
        message: str,
        history: list[ChatMessage],
        system_instruction: Optional[str],
    ) -> str:
        contents = [
            {"role": entry.role.value, "parts": [{"text": entry.text}]} for entry in history
        ]
        contents.append({"role": "user", "parts": [{"text": message}]})

        body: dict[str, Any] = {"contents": contents}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        logger.debug(f"Sending chat turn with {len(history)} prior messages")
        data = self._post(self._text_model, "generateContent", body)
        try:
            text = self._extract_text(data)
        except RemoteServiceError:
            logger.warning("Chat response carried no text")
            return self.EMPTY_CHAT_REPLY
        return text or self.EMPTY_CHAT_REPLY

    # -- transport ------------------------------------------------------------

    def _model_url(self, model: str, method: str) -> str:
        host = (
            "aiplatform.googleapis.com"
            if self._location == "global"
            else f"{self._location}-aiplatform.googleapis.com"
        )
        return (
            f"https://{host}/v1/projects/{self._project_id}/locations/{self._location}/"
            f"publishers/google/models/{model}:{method}"
        )

    def _access_token(self) -> str:
        """Return a bearer token from application default credentials."""
        try:
            if self._credentials is None:
                self._credentials, _ = google.auth.default(scopes=SCOPES)
            if not self._credentials.valid:
                self._credentials.refresh(google.auth.transport.requests.Request())
        except (auth_exceptions.DefaultCredentialsError, auth_exceptions.RefreshError) as e:
            self._credentials = None
            raise StaleCredentialError(f"No usable credential selected: {e}") from e
        except auth_exceptions.GoogleAuthError as e:
            logger.error(f"Could not obtain an access token: {e}")
            raise RemoteServiceError(f"Could not obtain an access token: {e}") from e
        return self._credentials.token

    def _post(self, model: str, method: str, body: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._access_token()}",
            "Content-Type": "application/json",
        }
        url = self._model_url(model, method)

        try:
            response = self._session.post(url, json=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.error(f"Request to {model}:{method} failed: {e}")
            raise RemoteServiceError(f"Request to {model} failed: {e}") from e

        if response.status_code != 200:
            self._raise_for_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(f"Response from {model} is not JSON: {e}") from e

    def _raise_for_status(self, response: requests.Response) -> None:
        error_msg = f"{response.status_code}: {response.text[:500]}"
        if response.status_code == 404 and STALE_CREDENTIAL_SIGNATURE in response.text.lower():
            logger.error(f"Credential no longer valid: {error_msg}")
            self._credentials = None
            raise StaleCredentialError(error_msg, response.status_code)

        logger.error(f"Vertex AI error: {error_msg}")
        raise RemoteServiceError(error_msg, response.status_code)

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            raise RemoteServiceError("No candidates in response")

        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)

    def _download_from_gcs(self, gcs_uri: str) -> bytes:
        """Download a GCS object into memory.

        Args:
            gcs_uri: GCS URI (gs://bucket/path/to/file).
        """
        uri_parts = gcs_uri[5:].split("/", 1)
        if len(uri_parts) != 2 or not all(uri_parts):
            raise RemoteServiceError(f"Invalid GCS URI format: {gcs_uri}")

        bucket_name, blob_name = uri_parts

        if self._storage_client is None:
            self._storage_client = storage.Client(project=self._project_id)

        try:
            blob = self._storage_client.bucket(bucket_name).blob(blob_name)
            content = blob.download_as_bytes()
        except google_exceptions.NotFound as e:
            logger.error(f"File not found in GCS: {gcs_uri}")
            raise RemoteServiceError(f"File not found in GCS: {gcs_uri}", 404) from e
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"GCS download failed: {e}")
            raise RemoteServiceError(f"GCS download failed: {e}") from e

        logger.debug(f"Downloaded {gcs_uri} ({len(content)} bytes)")
        return content


def _parse_operation(name: str, data: dict[str, Any]) -> VideoJob:
    """Map a fetchPredictOperation payload onto a VideoJob."""
    job = VideoJob(name=data.get("name", name), done=bool(data.get("done", False)))

    error = data.get("error")
    if error:
        job.error_message = error.get("message") or str(error)
        return job

    if not job.done:
        return job

    videos = (data.get("response") or {}).get("videos") or []
    if videos:
        video = videos[0]
        if video.get("gcsUri"):
            job.result_uri = video["gcsUri"]
        elif video.get("bytesBase64Encoded"):
            mime_type = video.get("mimeType", "video/mp4")
            job.result_uri = f"data:{mime_type};base64,{video['bytesBase64Encoded']}"
    return job


def _extract_json(response: str) -> str:
    """Extract JSON from a response that may be wrapped in a markdown fence."""
    if "```json" in response:
        start = response.find("```json") + 7
        end = response.find("```", start)
        if end > start:
            return response[start:end].strip()

    if "```" in response:
        start = response.find("```") + 3
        end = response.find("```", start)
        if end > start:
            return response[start:end].strip()

    return response.strip()
