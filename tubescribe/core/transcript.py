"""Timestamped transcript formatter.

WHY: Word-level speech-to-text output and YouTube caption snippets are
far too granular to show as a YouTube-style transcript. Viewers want one
short line per few seconds, each labelled with a coarse timestamp.

HOW: Every token is assigned to a 3-second bucket (always rounding down).
Tokens are appended to the current line while they stay in the same
bucket and the line stays within 50 characters. A bucket change or the
length cap flushes the line and starts a new one labelled with the
incoming token's bucket, so one long bucket can span several lines.

RULES:
- bucket = floor(floor(start_s) / 3) * 3
- Label is "m:ss": minutes unpadded, seconds zero-padded to two digits
- A line never grows past MAX_LINE_LENGTH by appending; a single long
  token still starts its own line
- Tokens are consumed in the order given (no sorting)
- Empty input formats to ""
"""

from __future__ import annotations

import math
from typing import Iterable, Iterator, List, Optional

from tubescribe.core.ir import FormattedLine, TimedToken

BUCKET_SECONDS = 3
MAX_LINE_LENGTH = 50


def bucket_start(start_s: float) -> int:
    """Return the start of the 3-second bucket containing ``start_s``."""
    whole_seconds = math.floor(start_s)
    return (whole_seconds // BUCKET_SECONDS) * BUCKET_SECONDS


def format_timestamp(seconds: int) -> str:
    """Render whole seconds as ``m:ss`` (e.g. 185 -> "3:05")."""
    minutes, remaining = divmod(int(seconds), 60)
    return "{}:{:02d}".format(minutes, remaining)


class TranscriptFormatter:
    """Incremental form of the formatter.

    WHY: The pipeline may want to emit lines as tokens arrive (e.g. while
    chunks of a long recording are still being transcribed) without
    buffering the whole token list.

    HOW: Holds the current bucket and line buffer. feed() returns any
    lines completed by the new token; flush() returns the final line.

    RULES:
    - Each instance is independent; nothing is shared between instances
    - feed() after flush() starts a fresh transcript
    """

    def __init__(self, max_line_length: int = MAX_LINE_LENGTH) -> None:
        self._max_line_length = max_line_length
        self._bucket: Optional[int] = None
        self._buffer = ""

    def feed(self, token: TimedToken) -> List[FormattedLine]:
        bucket = bucket_start(token.start_s)
        if bucket == self._bucket:
            candidate = self._buffer + " " + token.text
            if len(candidate) <= self._max_line_length:
                self._buffer = candidate
                return []

        emitted = self._take_line()
        self._bucket = bucket
        self._buffer = token.text
        return emitted

    def flush(self) -> List[FormattedLine]:
        emitted = self._take_line()
        self._bucket = None
        self._buffer = ""
        return emitted

    def _take_line(self) -> List[FormattedLine]:
        text = self._buffer.strip()
        if not text or self._bucket is None:
            return []
        return [FormattedLine(timestamp=format_timestamp(self._bucket), text=text)]


def iter_formatted_lines(tokens: Iterable[TimedToken]) -> Iterator[FormattedLine]:
    """Yield the formatted lines for a token sequence, in order."""
    formatter = TranscriptFormatter()
    for token in tokens:
        yield from formatter.feed(token)
    yield from formatter.flush()


def format_transcript(tokens: Iterable[TimedToken]) -> str:
    """Format a token sequence into the display transcript string.

    Args:
        tokens: TimedTokens in non-decreasing start order.

    Returns:
        Concatenated "m:ss\\ntext\\n" lines, or "" for no tokens.
    """
    return "".join(line.render() for line in iter_formatted_lines(tokens))
