"""Intermediate representation dataclasses shared by the core modules.

WHY: Speech-to-text words and YouTube caption snippets arrive in
different shapes. The transcript formatter, the chunk assembler and the
HTTP layer need a small, stable set of typed values to pass around
instead of untyped dicts.

HOW: Plain dataclasses:
  TimedToken   : one word or caption segment with its start time
  FormattedLine: one emitted "timestamp\\ntext" pair
  AssembledFile: the final file produced by chunk reassembly
  ChunkReceipt : what a single chunk arrival reports back

RULES:
- All times are float seconds (caption milliseconds are converted by adapters)
- TimedToken.text is never empty or whitespace-only once it reaches the formatter
- FormattedLine.render() is the only place the line layout is defined
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class TimedToken:
    """One unit of transcribed or captioned text.

    RULES:
    - text: non-empty display string
    - start_s: offset from media start in seconds, >= 0
    """

    text: str
    start_s: float


@dataclass(frozen=True)
class FormattedLine:
    """One transcript line: a bucket label and the text collected under it."""

    timestamp: str
    text: str

    def render(self) -> str:
        return "{}\n{}\n".format(self.timestamp, self.text)


@dataclass(frozen=True)
class AssembledFile:
    """A file reassembled from all chunks of one upload session.

    RULES:
    - filename: sanitized original name (safe as a path component)
    - stored_name: "<epoch-ms>_<filename>", unique per assembly
    - path: absolute location of the stored file
    - size: total byte count (sum of chunk sizes)
    """

    filename: str
    stored_name: str
    path: Path
    size: int


@dataclass
class ChunkReceipt:
    """Outcome of receiving one chunk.

    RULES:
    - complete is True only once every chunk index has arrived
    - file and record are only set when complete is True
    - record holds whatever the completion hook returned (e.g. the stored video)
    """

    complete: bool
    received_chunks: int
    total_chunks: int
    file: Optional[AssembledFile] = None
    record: Any = None
