"""Shared test fixtures for the tubescribe test suite.

WHY: Chunk, session, repository and API tests all need the same small
building blocks: an isolated staging/upload directory pair, a fresh
session store, and an in-memory database.

HOW: Every fixture is built on pytest's tmp_path so tests never touch
the real public/uploads or temp directories, and the repository uses an
in-memory SQLite URL so each test starts with an empty table.

RULES:
- No fixture shares state between tests
- No fixture performs network calls
"""

import pytest

from tubescribe.core.chunks import ChunkAssembler
from tubescribe.core.sessions import UploadSessionStore
from tubescribe.db import VideoRepository


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "staging"


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def store(staging_dir):
    """A session store with the default idle TTL."""
    return UploadSessionStore(staging_dir)


@pytest.fixture
def assembler(store, upload_dir):
    return ChunkAssembler(store, upload_dir)


@pytest.fixture
def repository():
    """A VideoRepository over a fresh in-memory SQLite database."""
    repo = VideoRepository("sqlite://")
    repo.init_schema()
    yield repo
    repo.engine.dispose()
