"""In-memory store for chunked upload sessions with idle eviction.

WHY: A large video arrives as many numbered chunks spread over separate
HTTP requests, possibly in parallel and possibly retried. Something has
to remember which chunks of which upload have arrived, and it has to do
so safely when two requests for the same upload race.

HOW: Two components work together:
  UploadSession     : dataclass holding one upload's identity, expected
                       chunk count, received indices and its own lock
  UploadSessionStore: thread-safe dict-based store with atomic
                       insert-if-absent, discard and idle eviction

RULES:
- The store lock only guards the dict; no file I/O happens under it
- Each session carries its own threading.Lock for the chunk critical section
- received_indices only ever grows
- discard() removes a session only if it is still the stored instance
- Idle sessions (no chunk for ttl_seconds) are evicted with their chunk
  files; ttl_seconds=0 disables eviction
"""

from __future__ import annotations

import hashlib
import logging
import re
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from tubescribe.core.ir import ChunkReceipt
from tubescribe.errors import SessionLimitError

logger = logging.getLogger(__name__)

# Default idle time before an incomplete session is evicted (seconds)
DEFAULT_TTL_SECONDS = 3600

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(name: str) -> str:
    """Replace every character outside [a-zA-Z0-9.-] with an underscore."""
    return _UNSAFE_CHARS_RE.sub("_", name)


def _session_key(session_id: str) -> str:
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()


@dataclass
class UploadSession:
    """State for one in-flight chunked upload.

    RULES:
    - session_id: client-chosen token, unique per transfer
    - original_filename: sanitized, safe as a path component
    - total_chunks: fixed at creation, >= 1
    - staging_path: prefix for "<staging_path>.part<index>" chunk files
    - completion: set once, when the session has been assembled
    """

    session_id: str
    original_filename: str
    total_chunks: int
    staging_path: Path
    created_at: float
    updated_at: float
    received_indices: Set[int] = field(default_factory=set)
    completion: Optional[ChunkReceipt] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def chunk_path(self, index: int) -> Path:
        return self.staging_path.with_name("{}.part{}".format(self.staging_path.name, index))

    @property
    def is_complete(self) -> bool:
        return len(self.received_indices) == self.total_chunks


class UploadSessionStore:
    """Thread-safe in-memory store for upload sessions.

    WHY: Concurrent chunk requests for different uploads must not block
    each other, while requests for the same upload must agree on a single
    session object.

    HOW: Sessions live in a plain dict keyed by session id. get_or_create()
    performs insert-if-absent under self._lock; everything that touches
    disk happens outside it.

    RULES:
    - All public methods that read or mutate the dict acquire self._lock
    - get_or_create() raises SessionLimitError when max_sessions is reached
    - get() returns None for unknown ids (no exceptions)
    - evict_idle() measures idleness from updated_at
    """

    def __init__(
        self,
        staging_dir: Path,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_sessions: int = 1000,
    ) -> None:
        self.staging_dir = Path(staging_dir)
        self._sessions: Dict[str, UploadSession] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions

    def get_or_create(
        self,
        session_id: str,
        filename: str,
        total_chunks: int,
    ) -> UploadSession:
        """Return the session for ``session_id``, creating it if unseen.

        RULES:
        - An existing session is returned unchanged (its filename and
          total_chunks win; callers validate consistency)
        - A new session's staging path is derived from a digest of the
          id plus the sanitized filename, so distinct ids never share
          chunk files
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                return session

            if len(self._sessions) >= self.max_sessions:
                raise SessionLimitError(
                    "Maximum number of concurrent uploads ({}) reached".format(
                        self.max_sessions
                    )
                )

            now = time.time()
            safe_name = sanitize_filename(filename)
            staging_path = self.staging_dir / "{}_{}".format(
                _session_key(session_id), safe_name
            )
            session = UploadSession(
                session_id=session_id,
                original_filename=safe_name,
                total_chunks=total_chunks,
                staging_path=staging_path,
                created_at=now,
                updated_at=now,
            )
            self._sessions[session_id] = session

        logger.info(
            "Started upload session %s for %s (%d chunks)",
            session_id, safe_name, total_chunks,
        )
        return session

    def get(self, session_id: str) -> Optional[UploadSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> List[UploadSession]:
        """Snapshot of all sessions, oldest first."""
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def discard(self, session_id: str, session: Optional[UploadSession] = None) -> bool:
        """Forget a session.

        When ``session`` is given, the entry is only removed if it is that
        exact instance, so a finished session never removes a newer one
        that reused its id.

        Returns True if an entry was removed.
        """
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return False
            if session is not None and current is not session:
                return False
            del self._sessions[session_id]
        return True

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Remove sessions that have not received a chunk within the TTL.

        RULES:
        - Does nothing when ttl_seconds is 0
        - Returns the count of evicted sessions
        - Chunk file removal is best-effort and happens outside the lock
        """
        if self._ttl_seconds <= 0:
            return 0

        if now is None:
            now = time.time()
        expired: List[UploadSession] = []

        with self._lock:
            for session_id, session in list(self._sessions.items()):
                if now - session.updated_at > self._ttl_seconds:
                    expired.append(self._sessions.pop(session_id))

        for session in expired:
            remove_chunk_files(session)
            logger.info(
                "Evicted idle upload session %s (%d/%d chunks, idle %.0fs)",
                session.session_id,
                len(session.received_indices),
                session.total_chunks,
                now - session.updated_at,
            )

        return len(expired)


def remove_chunk_files(session: UploadSession) -> None:
    """Delete every chunk file a session may have written.

    Never raises; failures are logged.
    """
    for index in range(session.total_chunks):
        path = session.chunk_path(index)
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError:
            logger.warning("Failed to clean up chunk file: %s", path)
