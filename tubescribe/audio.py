"""ffmpeg helpers: audio extraction, duration probing, and splitting.

WHY: The speech-to-text API accepts audio files of limited size. Videos
are converted to small 16 kHz mono WAV first, and long recordings are
cut into fixed-length pieces that are transcribed one by one.

HOW: Each helper runs ffmpeg/ffprobe as a subprocess through
asyncio.create_subprocess_exec so the event loop is never blocked.

RULES:
- Output audio is always 16 kHz, mono, 16-bit PCM WAV
- A non-zero exit code raises AudioProcessingError with stderr attached
- Piece i of a split covers [i * chunk_seconds, (i + 1) * chunk_seconds)
"""

from __future__ import annotations

import asyncio
import logging
import math
from pathlib import Path
from typing import List

from tubescribe.config import FFMPEG_BINARY, FFPROBE_BINARY
from tubescribe.errors import AudioProcessingError

logger = logging.getLogger(__name__)

_WAV_ARGS = ["-vn", "-ac", "1", "-ar", "16000", "-c:a", "pcm_s16le", "-f", "wav"]


async def _run(*args: str) -> str:
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise AudioProcessingError("{} not found on PATH".format(args[0])) from exc

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        tail = stderr.decode("utf-8", errors="replace").strip()[-500:]
        raise AudioProcessingError(
            "{} exited with code {}: {}".format(args[0], process.returncode, tail)
        )
    return stdout.decode("utf-8", errors="replace")


async def extract_audio(video_path: Path, audio_path: Path) -> Path:
    """Write the audio track of ``video_path`` to ``audio_path`` as WAV."""
    audio_path.parent.mkdir(parents=True, exist_ok=True)
    await _run(FFMPEG_BINARY, "-y", "-i", str(video_path), *_WAV_ARGS, str(audio_path))
    return audio_path


async def probe_duration(audio_path: Path) -> float:
    """Return the media duration in seconds (0.0 if ffprobe reports none)."""
    output = await _run(
        FFPROBE_BINARY,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(audio_path),
    )
    try:
        return float(output.strip())
    except ValueError:
        return 0.0


async def split_audio(audio_path: Path, chunk_seconds: int) -> List[Path]:
    """Cut ``audio_path`` into consecutive pieces of ``chunk_seconds``.

    Returns:
        Piece paths in time order, named "<stem>_chunk_<i>.wav" next to
        the source file.
    """
    duration = await probe_duration(audio_path)
    count = int(math.ceil(duration / chunk_seconds)) if duration > 0 else 0
    logger.info(
        "Audio duration %.1fs, splitting into %d pieces of %ds",
        duration, count, chunk_seconds,
    )

    pieces: List[Path] = []
    try:
        for i in range(count):
            piece = audio_path.with_name("{}_chunk_{}.wav".format(audio_path.stem, i))
            pieces.append(piece)
            await _run(
                FFMPEG_BINARY, "-y",
                "-ss", str(i * chunk_seconds),
                "-t", str(chunk_seconds),
                "-i", str(audio_path),
                *_WAV_ARGS,
                str(piece),
            )
    except AudioProcessingError:
        for piece in pieces:
            piece.unlink(missing_ok=True)
        raise
    return pieces
