"""Async HTTP clients for the hosted speech, chat and image APIs.

WHY: Transcription (Groq Whisper), metadata generation (OpenRouter chat
completions) and icon generation (OpenAI images) are all plain JSON over
HTTPS with Bearer auth. Wrapping each behind a small client class keeps
httpx details, auth and error classification out of the pipeline and
route code.

HOW: HostedAPIClient wraps httpx.AsyncClient as an async context
manager. _request() turns transport failures and non-2xx responses into
UpstreamError with an ErrorKind, so callers (and retry_with_backoff)
never inspect raw httpx exceptions. Each subclass adds one method per
API operation.

RULES:
- Always use the async context manager (async with GroqClient() as client:)
- API keys default to the config loaders (.env)
- Every failure surfaces as UpstreamError; no method returns partial data
- ``transport`` is accepted so tests can plug in httpx.MockTransport
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httpx
import jsonschema

from tubescribe.api.models import GeneratedContent, VerboseTranscription
from tubescribe.config import (
    GROQ_BASE_URL,
    GROQ_TRANSCRIPTION_MODEL,
    OPENAI_BASE_URL,
    OPENAI_IMAGE_MODEL,
    OPENAI_IMAGE_SIZE,
    OPENROUTER_BASE_URL,
    OPENROUTER_MODEL,
    load_groq_key,
    load_openai_key,
    load_openrouter_key,
)
from tubescribe.errors import ErrorKind, UpstreamError, error_from_response
from tubescribe.prompts import CONTENT_SCHEMA, build_content_messages, build_icon_prompt

logger = logging.getLogger(__name__)


class HostedAPIClient:
    """Base class: authenticated httpx client plus error classification.

    RULES:
    - Subclasses set _default_base_url and _load_key
    - _request() raises UpstreamError(NETWORK) for httpx transport errors
    - _request() raises UpstreamError(<kind by status>) for non-2xx responses
    """

    _default_base_url = ""
    _load_key: Callable[[], str] = staticmethod(lambda: "")

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 300.0,
    ) -> None:
        self._api_key = api_key or self._load_key()
        self._base_url = (base_url or self._default_base_url).rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": "Bearer {}".format(self._api_key)},
            timeout=httpx.Timeout(self._timeout, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "{} must be used as an async context manager".format(type(self).__name__)
            )
        return self._client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = self._ensure_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise UpstreamError(ErrorKind.NETWORK, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise error_from_response(response)
        return response


class GroqClient(HostedAPIClient):
    """Speech-to-text via Groq's OpenAI-compatible Whisper endpoint."""

    _default_base_url = GROQ_BASE_URL
    _load_key = staticmethod(load_groq_key)

    def __init__(self, model: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._model = model or GROQ_TRANSCRIPTION_MODEL

    async def transcribe(self, audio_path: Path, upload_name: Optional[str] = None) -> VerboseTranscription:
        """Transcribe one audio file with word-level timestamps.

        WHY: The transcript formatter needs per-word start times, which
        Whisper only returns with response_format=verbose_json and word
        timestamp granularity.

        HOW: POSTs the file as multipart/form-data to
        /audio/transcriptions and parses the verbose JSON reply.

        RULES:
        - The file is read from disk for each call (safe to retry)
        - Raises UpstreamError on transport failure or non-2xx status

        Args:
            audio_path: WAV (or other supported audio) file to send.
            upload_name: File name reported to the API; defaults to the
                path's name.

        Returns:
            VerboseTranscription with text and words.
        """
        audio_path = Path(audio_path)
        data = {
            "model": self._model,
            "response_format": "verbose_json",
            "timestamp_granularities[]": "word",
        }
        with open(audio_path, "rb") as f:
            response = await self._request(
                "POST",
                "/audio/transcriptions",
                data=data,
                files={"file": (upload_name or audio_path.name, f, "audio/wav")},
            )
        return VerboseTranscription.from_dict(response.json())


class OpenRouterClient(HostedAPIClient):
    """YouTube metadata generation via OpenRouter chat completions."""

    _default_base_url = OPENROUTER_BASE_URL
    _load_key = staticmethod(load_openrouter_key)

    def __init__(self, model: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._model = model or OPENROUTER_MODEL

    async def generate_content(self, transcription: str) -> GeneratedContent:
        """Ask the model for titles, descriptions, timestamps and more.

        RULES:
        - The reply must be JSON matching CONTENT_SCHEMA
        - Malformed or schema-violating replies raise UpstreamError(UNKNOWN)
        """
        body: Dict[str, Any] = {
            "model": self._model,
            "messages": build_content_messages(transcription),
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "youtube_content",
                    "strict": True,
                    "schema": CONTENT_SCHEMA,
                },
            },
        }
        response = await self._request("POST", "/chat/completions", json=body)

        try:
            raw = response.json()["choices"][0]["message"]["content"]
            content = json.loads(raw)
            jsonschema.validate(content, CONTENT_SCHEMA)
        except (KeyError, IndexError, TypeError, ValueError, jsonschema.ValidationError) as exc:
            raise UpstreamError(
                ErrorKind.UNKNOWN, "Unexpected content reply: {}".format(exc)
            ) from exc

        return GeneratedContent.from_dict(content)


class OpenAIImageClient(HostedAPIClient):
    """Icon generation via the OpenAI images endpoint."""

    _default_base_url = OPENAI_BASE_URL
    _load_key = staticmethod(load_openai_key)

    def __init__(self, model: Optional[str] = None, size: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._model = model or OPENAI_IMAGE_MODEL
        self._size = size or OPENAI_IMAGE_SIZE

    async def generate_icon(self, idea: str) -> str:
        """Generate one icon image for ``idea`` and return its URL."""
        body = {
            "model": self._model,
            "prompt": build_icon_prompt(idea),
            "n": 1,
            "size": self._size,
            "quality": "standard",
        }
        response = await self._request("POST", "/images/generations", json=body)

        images = response.json().get("data") or []
        if not images or not images[0].get("url"):
            raise UpstreamError(ErrorKind.UNKNOWN, "No image URL returned")
        return images[0]["url"]
