"""Hosted API clients: speech-to-text, chat completions, image generation.

WHY: Every outbound HTTP call goes through one of these clients so auth,
timeouts and error classification are handled in one place.

RULES:
- All HTTP calls go through HostedAPIClient subclasses (no direct httpx elsewhere)
- Authentication is via Bearer token from config
"""

from tubescribe.api.client import GroqClient, OpenAIImageClient, OpenRouterClient
from tubescribe.api.models import GeneratedContent, TranscriptionWord, VerboseTranscription

__all__ = [
    "GeneratedContent",
    "GroqClient",
    "OpenAIImageClient",
    "OpenRouterClient",
    "TranscriptionWord",
    "VerboseTranscription",
]
