"""Configuration constants, storage locations, and .env loading.

WHY: Centralizes every tunable value (API endpoints, models, directories,
upload limits) so it is easy to find, update, and override without
touching logic.

HOW: python-dotenv loads the .env file on import. Constants are
module-level values read from the environment with sensible defaults.
The load_*_key() functions give a clear error when a key is missing.

RULES:
- API keys are loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
- Directories are created lazily by the code that writes into them
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the app is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

BASE_DIR = Path(os.getenv("TUBESCRIBE_BASE_DIR", ".")).resolve()

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "public" / "uploads")))
"""Where assembled and single-shot uploads are stored (served at /uploads)."""

STAGING_DIR = Path(os.getenv("STAGING_DIR", str(BASE_DIR / "temp" / "uploads")))
"""Where per-chunk temporary files live until their session assembles."""

TEMP_DIR = Path(os.getenv("TEMP_DIR", str(BASE_DIR / "temp")))
"""Scratch space for extracted audio."""

UPLOAD_URL_PREFIX = "/uploads"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///{}".format(BASE_DIR / "tubescribe.db"))

# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "3000"))

# ---------------------------------------------------------------------------
# Upload sessions
# ---------------------------------------------------------------------------

UPLOAD_SESSION_TTL_SECONDS = int(os.getenv("UPLOAD_SESSION_TTL_SECONDS", "3600"))
"""Idle time after which an incomplete upload session is evicted (0 = never)."""

MAX_UPLOAD_SESSIONS = int(os.getenv("MAX_UPLOAD_SESSIONS", "1000"))

# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------

GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
GROQ_TRANSCRIPTION_MODEL = os.getenv("GROQ_TRANSCRIPTION_MODEL", "whisper-large-v3-turbo")

AUDIO_CHUNK_THRESHOLD_MB = float(os.getenv("AUDIO_CHUNK_THRESHOLD_MB", "20"))
AUDIO_CHUNK_MINUTES = int(os.getenv("AUDIO_CHUNK_MINUTES", "10"))

FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
FFPROBE_BINARY = os.getenv("FFPROBE_BINARY", "ffprobe")

RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
RETRY_BASE_DELAY_S = float(os.getenv("RETRY_BASE_DELAY_S", "1.0"))

# ---------------------------------------------------------------------------
# Content and image generation
# ---------------------------------------------------------------------------

OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "google/gemini-2.5-pro")

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
OPENAI_IMAGE_SIZE = os.getenv("OPENAI_IMAGE_SIZE", "1024x1024")


def _load_key(name: str, label: str) -> str:
    key = os.getenv(name, "").strip()
    if not key:
        raise ValueError(
            "{} API key not configured. Add {} to the .env file.".format(label, name)
        )
    return key


def load_groq_key() -> str:
    """Load the Groq API key used for speech-to-text.

    RULES:
    - Raises ValueError if GROQ_KEY is missing or empty
    """
    return _load_key("GROQ_KEY", "Groq")


def load_openrouter_key() -> str:
    """Load the OpenRouter API key used for metadata generation."""
    return _load_key("OPENROUTER_KEY", "OpenRouter")


def load_openai_key() -> str:
    return _load_key("OPENAI_API_KEY", "OpenAI")
