"""Exception types, upstream error classification, and retry policy.

WHY: Three kinds of failure need different handling: bad client input
(reject before any I/O), broken uploads (discard the session), and
failures of hosted APIs (retry only when the network was at fault).
Classifying upstream failures once, at the httpx boundary, lets the
retry loop and the user-facing messages consult a tag instead of
string-matching error messages.

HOW: UpstreamError carries an ErrorKind. classify_status() maps HTTP
status codes to kinds, classify_http_error() maps httpx exceptions.
retry_with_backoff() re-invokes an async callable with exponential
backoff while should_retry(kind) holds.

RULES:
- Only ErrorKind.NETWORK is retried
- Delay before retry n (0-based) is base_delay * 2**n
- The last error is re-raised unchanged once attempts run out
- Validation errors never reach the filesystem
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Upload errors
# ---------------------------------------------------------------------------


class ChunkValidationError(ValueError):
    """A chunk request is missing fields or is inconsistent with its session."""


class AssemblyError(RuntimeError):
    """A session could not be reassembled (e.g. a chunk file vanished).

    The session is discarded when this is raised; the client must restart
    the upload with a new session id.
    """


class SessionLimitError(RuntimeError):
    """Too many upload sessions are in flight."""


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------


class AudioProcessingError(RuntimeError):
    """ffmpeg or ffprobe failed on the input media."""


class InvalidYouTubeUrlError(ValueError):
    """The URL does not contain a recognizable YouTube video id."""


class CaptionsUnavailableError(LookupError):
    """The video has no captions (or none that contain text)."""


# ---------------------------------------------------------------------------
# Upstream errors
# ---------------------------------------------------------------------------


class ErrorKind(str, enum.Enum):
    """Classification of a failed call to a hosted API."""

    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMIT = "rate-limit"
    PAYLOAD_TOO_LARGE = "payload-too-large"
    UNKNOWN = "unknown"


class UpstreamError(Exception):
    """Raised when a hosted API call fails.

    RULES:
    - kind is always set; status_code is None for transport failures
    - message is the response body text or the transport error text
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.status_code = status_code
        if status_code is not None:
            super().__init__("{} error {}: {}".format(kind.value, status_code, message))
        else:
            super().__init__("{} error: {}".format(kind.value, message))


_STATUS_KINDS = {
    401: ErrorKind.AUTH,
    403: ErrorKind.AUTH,
    413: ErrorKind.PAYLOAD_TOO_LARGE,
    429: ErrorKind.RATE_LIMIT,
}

_USER_MESSAGES = {
    ErrorKind.NETWORK: "Network connection failed. Please check your internet connection and try again.",
    ErrorKind.AUTH: "Invalid API key. Please check your API key configuration.",
    ErrorKind.PAYLOAD_TOO_LARGE: "Audio file too large. Try a shorter video.",
    ErrorKind.RATE_LIMIT: "Rate limit exceeded. Please wait before trying again.",
}


def classify_status(status_code: int) -> ErrorKind:
    """Map an HTTP status code from a hosted API to an ErrorKind."""
    return _STATUS_KINDS.get(status_code, ErrorKind.UNKNOWN)


def classify_http_error(exc: Exception) -> ErrorKind:
    """Map an exception raised around an httpx call to an ErrorKind.

    RULES:
    - UpstreamError keeps its own kind
    - httpx transport failures (connect, read, timeouts, resets) are NETWORK
    - httpx.HTTPStatusError is classified by its status code
    - Anything else is UNKNOWN
    """
    if isinstance(exc, UpstreamError):
        return exc.kind
    if isinstance(exc, httpx.HTTPStatusError):
        return classify_status(exc.response.status_code)
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN


def error_from_response(response: httpx.Response) -> UpstreamError:
    """Build an UpstreamError for a non-2xx response."""
    return UpstreamError(
        classify_status(response.status_code),
        response.text,
        status_code=response.status_code,
    )


def should_retry(kind: ErrorKind) -> bool:
    return kind is ErrorKind.NETWORK


def user_message(error: UpstreamError, action: str = "Transcription") -> str:
    """Human-readable message for an upstream failure."""
    message = _USER_MESSAGES.get(error.kind)
    if message is not None:
        return message
    return "{} failed: {}".format(action, error.message or "Unknown error")


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``fn`` until it succeeds, retrying network failures.

    WHY: Long uploads to the speech-to-text API regularly hit connection
    resets. Retrying those is safe; retrying a rejected key or an
    oversized payload is not.

    HOW: Runs fn(); on UpstreamError whose kind passes should_retry,
    sleeps base_delay * 2**attempt and tries again, up to max_retries
    extra attempts. Other exceptions propagate immediately.

    Args:
        fn: Zero-argument coroutine factory.
        max_retries: Retries after the first attempt.
        base_delay: Delay in seconds before the first retry.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        Whatever fn() returns.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except UpstreamError as exc:
            if not should_retry(exc.kind) or attempt >= max_retries:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Attempt %d failed (%s), retrying in %.1fs", attempt + 1, exc, delay
            )
            await sleep(delay)
            attempt += 1
