"""Transcript pipelines: uploaded media via speech-to-text, YouTube via captions.

WHY: Both entry points (HTTP routes and the CLI) need the same two flows:
turn a stored video into a formatted transcript, and turn a YouTube URL
into one. Keeping them here means the routes only deal with HTTP and
persistence.

HOW: transcribe_media() extracts a 16 kHz mono WAV with ffmpeg, splits it
into fixed-length pieces when it is too large for the speech API, sends
each piece through GroqClient with retry, shifts word times by the piece
offset, then adapts the words to TimedTokens and formats them.
fetch_youtube_transcript() pulls caption snippets with
youtube-transcript-api, retrying connection failures, and runs them
through the same formatter.

RULES:
- Temporary audio files are always removed, even on failure
- Piece i is shifted by i * AUDIO_CHUNK_MINUTES * 60 seconds
- A transcription without word timings falls back to its plain text
- Upstream failures are re-raised as UpstreamError carrying the user message
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import requests
from youtube_transcript_api import (
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from tubescribe.adapters import snippets_to_tokens, words_to_tokens
from tubescribe.api.client import GroqClient
from tubescribe.api.models import VerboseTranscription
from tubescribe.audio import extract_audio, split_audio
from tubescribe.config import (
    AUDIO_CHUNK_MINUTES,
    AUDIO_CHUNK_THRESHOLD_MB,
    RETRY_BASE_DELAY_S,
    RETRY_MAX_ATTEMPTS,
    TEMP_DIR,
)
from tubescribe.core.transcript import format_transcript
from tubescribe.errors import (
    CaptionsUnavailableError,
    ErrorKind,
    InvalidYouTubeUrlError,
    UpstreamError,
    retry_with_backoff,
    user_message,
)

logger = logging.getLogger(__name__)

_YOUTUBE_ID_RE = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"
)


# ---------------------------------------------------------------------------
# Speech-to-text
# ---------------------------------------------------------------------------


def combine_transcriptions(parts: Sequence[VerboseTranscription]) -> VerboseTranscription:
    """Join already-shifted piece transcriptions into one.

    Text is joined with single spaces; word lists are concatenated in
    piece order.
    """
    if not parts:
        return VerboseTranscription(text="", words=[])
    if len(parts) == 1:
        return parts[0]

    words = []
    for part in parts:
        words.extend(part.words)
    text = " ".join(part.text.strip() for part in parts if part.text.strip())
    return VerboseTranscription(text=text, words=words)


def format_verbose_transcription(transcription: VerboseTranscription) -> str:
    """Render a transcription as timestamped lines, or plain text without words."""
    if not transcription.words:
        return transcription.text
    return format_transcript(words_to_tokens(transcription.words))


async def transcribe_media(
    video_path: Path,
    client_factory: Callable[[], GroqClient] = GroqClient,
    temp_dir: Optional[Path] = None,
    threshold_mb: float = AUDIO_CHUNK_THRESHOLD_MB,
    chunk_minutes: int = AUDIO_CHUNK_MINUTES,
    max_retries: int = RETRY_MAX_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_S,
) -> str:
    """Transcribe a stored video file into a formatted transcript.

    Args:
        video_path: Video (or audio) file on local disk.
        client_factory: Builds the speech-to-text client; tests pass a
            factory that plugs in httpx.MockTransport.
        temp_dir: Where intermediate WAV files go. Defaults to TEMP_DIR.
        threshold_mb: Audio above this size is split before upload.
        chunk_minutes: Length of each split piece.

    Returns:
        The formatted transcript text.

    Raises:
        AudioProcessingError: If ffmpeg/ffprobe fail.
        UpstreamError: If the speech API keeps failing; the message is the
            user-facing one from user_message().
    """
    video_path = Path(video_path)
    work_dir = Path(temp_dir) if temp_dir is not None else TEMP_DIR
    work_dir.mkdir(parents=True, exist_ok=True)

    audio_path = work_dir / "{}_audio.wav".format(uuid.uuid4().hex)
    pieces: List[Path] = []
    chunk_seconds = chunk_minutes * 60

    try:
        logger.info("Extracting audio from %s", video_path.name)
        await extract_audio(video_path, audio_path)

        size_mb = audio_path.stat().st_size / (1024 * 1024)
        logger.info("Audio file size: %.2f MB", size_mb)

        if size_mb > threshold_mb:
            pieces = await split_audio(audio_path, chunk_seconds)
        targets = pieces or [audio_path]

        parts: List[VerboseTranscription] = []
        async with client_factory() as client:
            for i, target in enumerate(targets):
                logger.info("Transcribing piece %d/%d", i + 1, len(targets))
                part = await retry_with_backoff(
                    lambda target=target, i=i: client.transcribe(
                        target, "audio_chunk_{}.wav".format(i)
                    ),
                    max_retries=max_retries,
                    base_delay=base_delay,
                )
                parts.append(part.shifted(i * chunk_seconds))

        return format_verbose_transcription(combine_transcriptions(parts))

    except UpstreamError as exc:
        logger.error("Transcription failed for %s: %s", video_path.name, exc)
        raise UpstreamError(exc.kind, user_message(exc), exc.status_code) from exc

    finally:
        for path in [audio_path] + pieces:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Failed to remove temp file %s: %s", path, exc)


# ---------------------------------------------------------------------------
# YouTube captions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class YouTubeTranscript:
    """Result of a caption import."""

    video_id: str
    url: str
    transcription: str


def extract_video_id(url: str) -> Optional[str]:
    """Return the video id from a watch, youtu.be or embed URL, else None."""
    match = _YOUTUBE_ID_RE.search(url or "")
    return match.group(1) if match else None


async def fetch_youtube_transcript(
    url: str,
    api: Optional[YouTubeTranscriptApi] = None,
    max_retries: int = RETRY_MAX_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_S,
) -> YouTubeTranscript:
    """Fetch captions for a YouTube URL and format them.

    Connection resets and timeouts from the caption service are retried
    with the same backoff as the speech API.

    Raises:
        InvalidYouTubeUrlError: If no video id can be extracted.
        CaptionsUnavailableError: If the video has no usable captions.
        UpstreamError: If the caption service stays unreachable.
    """
    video_id = extract_video_id(url)
    if not video_id:
        raise InvalidYouTubeUrlError("Invalid YouTube URL: {}".format(url))

    api = api or YouTubeTranscriptApi()

    async def _fetch():
        try:
            # The caption client is synchronous (requests), keep it off the loop.
            return await asyncio.to_thread(api.fetch, video_id)
        except (TranscriptsDisabled, NoTranscriptFound, VideoUnavailable) as exc:
            raise CaptionsUnavailableError(
                "No transcript available for this video"
            ) from exc
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as exc:
            raise UpstreamError(ErrorKind.NETWORK, str(exc)) from exc

    logger.info("Fetching captions for YouTube video %s", video_id)
    fetched = await retry_with_backoff(
        _fetch, max_retries=max_retries, base_delay=base_delay
    )

    tokens = snippets_to_tokens(fetched)
    if not tokens:
        raise CaptionsUnavailableError("No transcript available for this video")

    return YouTubeTranscript(
        video_id=video_id,
        url=url,
        transcription=format_transcript(tokens),
    )
