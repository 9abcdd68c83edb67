"""Response dataclasses for the hosted APIs.

WHY: The speech-to-text and chat-completion APIs return plain JSON.
Typed dataclasses make the fields we rely on explicit and keep
``data["..."]`` lookups in one place.

HOW: Each dataclass maps to one JSON object and has a from_dict()
factory. GeneratedContent also serializes back to the camelCase keys the
web client and the database use.

RULES:
- TranscriptionWord times are float seconds
- VerboseTranscription.words is empty when the API returned no word timings
- GeneratedContent keys on the wire are camelCase (thumbnailTexts, ...)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class TranscriptionWord:
    """One word with timings from a verbose_json transcription."""

    word: str
    start: float
    end: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TranscriptionWord:
        return cls(
            word=data.get("word", ""),
            start=float(data.get("start", 0.0)),
            end=float(data.get("end", 0.0)),
        )

    def shifted(self, offset_s: float) -> TranscriptionWord:
        return TranscriptionWord(word=self.word, start=self.start + offset_s, end=self.end + offset_s)


@dataclass
class VerboseTranscription:
    """A speech-to-text result with optional word-level timestamps.

    RULES:
    - text is the full plain transcript (may be "")
    - words is ordered by start time within one audio file
    """

    text: str
    words: List[TranscriptionWord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VerboseTranscription:
        return cls(
            text=data.get("text") or "",
            words=[TranscriptionWord.from_dict(w) for w in data.get("words") or []],
        )

    def shifted(self, offset_s: float) -> VerboseTranscription:
        """Copy with every word moved ``offset_s`` seconds later."""
        return VerboseTranscription(
            text=self.text,
            words=[w.shifted(offset_s) for w in self.words],
        )


_CONTENT_KEYS = (
    ("titles", "titles"),
    ("descriptions", "descriptions"),
    ("timestamps", "timestamps"),
    ("thumbnail_texts", "thumbnailTexts"),
    ("community_posts", "communityPosts"),
    ("image_idea", "imageIdea"),
)


@dataclass
class GeneratedContent:
    """YouTube metadata suggestions for one video."""

    titles: List[str]
    descriptions: List[str]
    timestamps: List[str]
    thumbnail_texts: List[str]
    community_posts: List[str]
    image_idea: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GeneratedContent:
        return cls(**{attr: data[key] for attr, key in _CONTENT_KEYS})

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in _CONTENT_KEYS}
