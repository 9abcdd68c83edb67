"""Adapter modules that turn collaborator output into TimedTokens.

WHY: Speech-to-text words and YouTube captions use different shapes and
time units. Adapters unify them at the boundary so the formatter only
ever sees TimedToken.

RULES:
- Adapters are pure data transformations, no I/O, no side effects.
- Adapters must not modify their input objects.
"""

from tubescribe.adapters.tokens import (
    caption_segments_to_tokens,
    snippets_to_tokens,
    words_to_tokens,
)

__all__ = ["caption_segments_to_tokens", "snippets_to_tokens", "words_to_tokens"]
