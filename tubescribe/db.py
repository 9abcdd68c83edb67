"""Video records stored through SQLAlchemy.

WHY: Uploaded files, transcripts and generated metadata must survive
restarts and be listable in the library view. An ORM-backed relational
store keeps that trivial and lets DATABASE_URL point at SQLite locally
or Postgres in production.

HOW: One declarative model (Video) and a small repository class that
opens a short-lived Session per operation. Objects are returned detached
(expire_on_commit=False) so callers can read them after the session is
closed.

RULES:
- Video ids are uuid4 hex strings generated on insert
- list_videos() returns newest first
- update() only touches the fields it is given
- Every repository call is safe to run from a worker thread
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Video(Base):
    """A video the user uploaded or imported from YouTube."""

    __tablename__ = "videos"

    id = Column(String(32), primary_key=True, default=_new_id)
    filename = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=False)  # /uploads/<name> or the YouTube URL
    source = Column(String(20), nullable=False, default="upload")  # upload | youtube
    youtube_video_id = Column(String(32), nullable=True)
    transcription = Column(Text, nullable=True)
    generated_content = Column(Text, nullable=True)  # JSON document
    generated_image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys the web client expects."""
        content = None
        if self.generated_content:
            content = json.loads(self.generated_content)
        return {
            "id": self.id,
            "filename": self.filename,
            "fileUrl": self.file_url,
            "source": self.source,
            "youtubeVideoId": self.youtube_video_id,
            "transcription": self.transcription,
            "generatedContent": content,
            "generatedImageUrl": self.generated_image_url,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return "<Video(id='{}', filename='{}', source='{}')>".format(
            self.id, self.filename, self.source
        )


class VideoRepository:
    """CRUD access to Video rows.

    Args:
        database_url: SQLAlchemy URL, e.g. "sqlite:///./tubescribe.db".
    """

    def __init__(self, database_url: str) -> None:
        engine_kwargs: Dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(database_url, **engine_kwargs)
        self._sessionmaker = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def create(self, **fields: Any) -> Video:
        video = Video(**fields)
        with self._sessionmaker() as session:
            session.add(video)
            session.commit()
        logger.info("Created video %s (%s)", video.id, video.filename)
        return video

    def get(self, video_id: str) -> Optional[Video]:
        with self._sessionmaker() as session:
            return session.get(Video, video_id)

    def list_videos(self) -> List[Video]:
        with self._sessionmaker() as session:
            return list(
                session.query(Video).order_by(Video.created_at.desc()).all()
            )

    def update(self, video_id: str, **fields: Any) -> Optional[Video]:
        """Set the given columns on one video; None if it does not exist."""
        with self._sessionmaker() as session:
            video = session.get(Video, video_id)
            if video is None:
                return None
            for name, value in fields.items():
                setattr(video, name, value)
            session.commit()
            return video

    def delete(self, video_id: str) -> Optional[Video]:
        """Delete one video row and return it (None if it did not exist)."""
        with self._sessionmaker() as session:
            video = session.get(Video, video_id)
            if video is None:
                return None
            session.delete(video)
            session.commit()
        logger.info("Deleted video %s", video_id)
        return video
