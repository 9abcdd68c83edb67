"""Adapters: speech-to-text words and caption segments to TimedTokens.

WHY: The transcript formatter must never branch on where its input came
from. Groq's verbose_json words, YouTube caption snippets from
youtube-transcript-api, and raw caption segments (millisecond start
times, section headers mixed in) all look different.

HOW: One function per producer shape, each returning a list of
TimedToken in input order:
  1. words_to_tokens    : {"word", "start"} (seconds) from speech-to-text
  2. snippets_to_tokens : youtube-transcript-api snippets (seconds)
  3. caption_segments_to_tokens: {"start_ms", "text" | "snippet"} segments

RULES:
- Empty or whitespace-only text is dropped here, never in the formatter
- Caption section headers (type "TranscriptSectionHeader") are dropped
- Millisecond start times are converted to float seconds
- Caption text has internal newlines collapsed to single spaces
- Adapters are pure: no I/O, inputs are never modified
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from tubescribe.core.ir import TimedToken

SECTION_HEADER_TYPE = "TranscriptSectionHeader"


def _field(item: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an attribute-style object."""
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _clean_caption_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return " ".join(text.split())


def words_to_tokens(words: Iterable[Any]) -> List[TimedToken]:
    """Convert speech-to-text word entries into TimedTokens.

    Each entry needs ``word`` (text) and ``start`` (seconds). Entries may
    be dicts or objects such as api.models.TranscriptionWord.
    """
    tokens: List[TimedToken] = []
    for entry in words:
        text = _field(entry, "word") or ""
        if not text.strip():
            continue
        start = float(_field(entry, "start", 0.0) or 0.0)
        tokens.append(TimedToken(text=text, start_s=max(start, 0.0)))
    return tokens


def snippets_to_tokens(snippets: Iterable[Any]) -> List[TimedToken]:
    """Convert youtube-transcript-api snippets into TimedTokens.

    Accepts FetchedTranscriptSnippet objects or the dicts returned by
    ``FetchedTranscript.to_raw_data()`` (``text``, ``start``, ``duration``).
    """
    tokens: List[TimedToken] = []
    for snippet in snippets:
        text = _clean_caption_text(_field(snippet, "text"))
        if not text:
            continue
        start = float(_field(snippet, "start", 0.0) or 0.0)
        tokens.append(TimedToken(text=text, start_s=max(start, 0.0)))
    return tokens


def _segment_text(segment: Any) -> str:
    text = _field(segment, "text")
    if text:
        return text
    snippet = _field(segment, "snippet")
    if snippet is None:
        return ""
    text = _field(snippet, "text")
    if text:
        return text
    runs = _field(snippet, "runs") or []
    if runs:
        return _field(runs[0], "text") or ""
    return ""


def caption_segments_to_tokens(segments: Iterable[Any]) -> List[TimedToken]:
    """Convert raw caption segments (millisecond start times) into TimedTokens.

    WHY: Caption panels expose segments with ``start_ms`` as strings or
    ints, text either flat or nested under ``snippet``, and non-text
    section headers interleaved with the spoken text.

    RULES:
    - start_ms missing or empty counts as 0
    - Segments with type "TranscriptSectionHeader" are skipped
    - Segments whose text is empty after cleaning are skipped
    """
    tokens: List[TimedToken] = []
    for segment in segments:
        if _field(segment, "type") == SECTION_HEADER_TYPE:
            continue
        text = _clean_caption_text(_segment_text(segment))
        if not text:
            continue
        start_ms = int(_field(segment, "start_ms", 0) or 0)
        tokens.append(TimedToken(text=text, start_s=max(start_ms, 0) / 1000.0))
    return tokens
