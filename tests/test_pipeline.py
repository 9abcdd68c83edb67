"""Tests for the transcription and YouTube caption pipelines.

WHY: The pipeline glues ffmpeg, the speech API, the adapters and the
formatter together. Piece offsets, the plain-text fallback, retry and
temp file cleanup are easy to break without noticing in manual runs.

HOW: ffmpeg helpers are monkeypatched with coroutines that just write
placeholder files; the speech client is a small fake with the same async
context manager interface as GroqClient. The YouTube caption client is a
fake object exposing fetch().
"""

from __future__ import annotations

import asyncio

import pytest
import requests
from youtube_transcript_api import FetchedTranscriptSnippet, TranscriptsDisabled

from tubescribe.api.models import TranscriptionWord, VerboseTranscription
from tubescribe.errors import (
    CaptionsUnavailableError,
    ErrorKind,
    InvalidYouTubeUrlError,
    UpstreamError,
)
from tubescribe.pipeline import (
    combine_transcriptions,
    extract_video_id,
    fetch_youtube_transcript,
    format_verbose_transcription,
    transcribe_media,
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSpeechClient:
    """Returns (or raises) queued results, one per transcribe() call."""

    def __init__(self, results):
        self.results = list(results)
        self.upload_names = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def transcribe(self, audio_path, upload_name=None):
        assert audio_path.exists()
        self.upload_names.append(upload_name)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeCaptionApi:
    """Raises the queued errors in order, then returns the snippets."""

    def __init__(self, snippets=None, error=None, errors=()):
        self.snippets = snippets or []
        self.error = error
        self.errors = list(errors)
        self.fetched = []

    def fetch(self, video_id):
        self.fetched.append(video_id)
        if self.errors:
            raise self.errors.pop(0)
        if self.error is not None:
            raise self.error
        return self.snippets


def _words(*pairs):
    return [TranscriptionWord(word=w, start=s, end=s + 0.3) for w, s in pairs]


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    """Patch audio extraction and splitting; returns a call log."""
    calls = {"split": 0}

    async def fake_extract(video_path, audio_path):
        audio_path.write_bytes(b"\0" * 2048)
        return audio_path

    async def fake_split(audio_path, chunk_seconds):
        calls["split"] += 1
        calls["chunk_seconds"] = chunk_seconds
        pieces = []
        for i in range(2):
            piece = audio_path.with_name("{}_chunk_{}.wav".format(audio_path.stem, i))
            piece.write_bytes(b"\0")
            pieces.append(piece)
        return pieces

    monkeypatch.setattr("tubescribe.pipeline.extract_audio", fake_extract)
    monkeypatch.setattr("tubescribe.pipeline.split_audio", fake_split)
    return calls


@pytest.fixture
def video_file(tmp_path):
    path = tmp_path / "talk.mp4"
    path.write_bytes(b"video")
    return path


# ---------------------------------------------------------------------------
# Combining and formatting
# ---------------------------------------------------------------------------


class TestCombine:

    def test_empty(self):
        assert combine_transcriptions([]) == VerboseTranscription(text="", words=[])

    def test_single_part_is_returned(self):
        part = VerboseTranscription(text="hi", words=_words(("hi", 0)))
        assert combine_transcriptions([part]) is part

    def test_text_joined_and_words_concatenated(self):
        a = VerboseTranscription(text="one ", words=_words(("one", 0)))
        b = VerboseTranscription(text=" two", words=_words(("two", 600)))
        combined = combine_transcriptions([a, b])
        assert combined.text == "one two"
        assert [w.word for w in combined.words] == ["one", "two"]

    def test_plain_text_fallback(self):
        assert format_verbose_transcription(VerboseTranscription(text="no timings")) == "no timings"

    def test_words_are_formatted(self):
        t = VerboseTranscription(text="a b", words=_words(("a", 0), ("b", 4)))
        assert format_verbose_transcription(t) == "0:00\na\n0:03\nb\n"


# ---------------------------------------------------------------------------
# transcribe_media
# ---------------------------------------------------------------------------


class TestTranscribeMedia:

    def test_small_audio_is_sent_whole(self, fake_ffmpeg, video_file, tmp_path):
        client = FakeSpeechClient([
            VerboseTranscription(text="hello there", words=_words(("hello", 0.2), ("there", 1.0))),
        ])
        result = asyncio.run(transcribe_media(
            video_file, client_factory=lambda: client, temp_dir=tmp_path / "work",
        ))

        assert result == "0:00\nhello there\n"
        assert fake_ffmpeg["split"] == 0
        assert client.upload_names == ["audio_chunk_0.wav"]

    def test_large_audio_pieces_are_offset(self, fake_ffmpeg, video_file, tmp_path):
        client = FakeSpeechClient([
            VerboseTranscription(text="first", words=_words(("first", 1.0))),
            VerboseTranscription(text="second", words=_words(("second", 1.0))),
        ])
        result = asyncio.run(transcribe_media(
            video_file,
            client_factory=lambda: client,
            temp_dir=tmp_path / "work",
            threshold_mb=0.001,
            chunk_minutes=10,
        ))

        assert fake_ffmpeg["split"] == 1
        assert fake_ffmpeg["chunk_seconds"] == 600
        assert result == "0:00\nfirst\n10:00\nsecond\n"
        assert client.upload_names == ["audio_chunk_0.wav", "audio_chunk_1.wav"]

    def test_temp_files_are_removed(self, fake_ffmpeg, video_file, tmp_path):
        work = tmp_path / "work"
        client = FakeSpeechClient([VerboseTranscription(text="a"), VerboseTranscription(text="b")])
        asyncio.run(transcribe_media(
            video_file, client_factory=lambda: client, temp_dir=work, threshold_mb=0.001,
        ))
        assert list(work.iterdir()) == []

    def test_network_errors_are_retried(self, fake_ffmpeg, video_file, tmp_path):
        client = FakeSpeechClient([
            UpstreamError(ErrorKind.NETWORK, "reset"),
            VerboseTranscription(text="ok", words=_words(("ok", 0))),
        ])
        result = asyncio.run(transcribe_media(
            video_file, client_factory=lambda: client, temp_dir=tmp_path / "work", base_delay=0,
        ))
        assert result == "0:00\nok\n"
        assert len(client.upload_names) == 2

    def test_auth_error_carries_user_message(self, fake_ffmpeg, video_file, tmp_path):
        work = tmp_path / "work"
        client = FakeSpeechClient([UpstreamError(ErrorKind.AUTH, "invalid_api_key", 401)])

        with pytest.raises(UpstreamError) as excinfo:
            asyncio.run(transcribe_media(
                video_file, client_factory=lambda: client, temp_dir=work, base_delay=0,
            ))

        assert excinfo.value.kind is ErrorKind.AUTH
        assert excinfo.value.status_code == 401
        assert "API key" in excinfo.value.message
        assert len(client.upload_names) == 1
        assert list(work.iterdir()) == []


# ---------------------------------------------------------------------------
# YouTube
# ---------------------------------------------------------------------------


class TestExtractVideoId:

    @pytest.mark.parametrize(
        "url, video_id",
        [
            ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
            ("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42s", "dQw4w9WgXcQ"),
            ("https://youtu.be/dQw4w9WgXcQ?si=abc", "dQw4w9WgXcQ"),
            ("https://www.youtube.com/embed/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
            ("https://vimeo.com/12345", None),
            ("", None),
        ],
    )
    def test_extract(self, url, video_id):
        assert extract_video_id(url) == video_id


class TestFetchYouTubeTranscript:

    def test_formats_captions(self):
        api = FakeCaptionApi(snippets=[
            FetchedTranscriptSnippet(text="welcome back", start=0.5, duration=2.0),
            FetchedTranscriptSnippet(text="today we\nbuild", start=3.1, duration=2.0),
        ])
        result = asyncio.run(fetch_youtube_transcript("https://youtu.be/abc123", api=api))

        assert api.fetched == ["abc123"]
        assert result.video_id == "abc123"
        assert result.url == "https://youtu.be/abc123"
        assert result.transcription == "0:00\nwelcome back\n0:03\ntoday we build\n"

    def test_invalid_url(self):
        api = FakeCaptionApi()
        with pytest.raises(InvalidYouTubeUrlError):
            asyncio.run(fetch_youtube_transcript("https://example.com/video", api=api))
        assert api.fetched == []

    def test_disabled_captions(self):
        api = FakeCaptionApi(error=TranscriptsDisabled("abc123"))
        with pytest.raises(CaptionsUnavailableError):
            asyncio.run(fetch_youtube_transcript("https://youtu.be/abc123", api=api))
        assert api.fetched == ["abc123"]

    def test_empty_captions(self):
        api = FakeCaptionApi(snippets=[FetchedTranscriptSnippet(text=" ", start=0.0, duration=1.0)])
        with pytest.raises(CaptionsUnavailableError):
            asyncio.run(fetch_youtube_transcript("https://youtu.be/abc123", api=api))

    def test_connection_reset_is_retried(self):
        api = FakeCaptionApi(
            snippets=[FetchedTranscriptSnippet(text="hello", start=0.0, duration=1.0)],
            errors=[requests.exceptions.ConnectionError("connection reset")],
        )
        result = asyncio.run(fetch_youtube_transcript(
            "https://youtu.be/abc123", api=api, base_delay=0,
        ))
        assert result.transcription == "0:00\nhello\n"
        assert api.fetched == ["abc123", "abc123"]

    def test_unreachable_service_gives_up(self):
        api = FakeCaptionApi(error=requests.exceptions.Timeout("read timed out"))
        with pytest.raises(UpstreamError) as excinfo:
            asyncio.run(fetch_youtube_transcript(
                "https://youtu.be/abc123", api=api, max_retries=2, base_delay=0,
            ))
        assert excinfo.value.kind is ErrorKind.NETWORK
        assert len(api.fetched) == 3

