"""Tests for the Video repository.

HOW: Each test gets a fresh in-memory SQLite database from the
``repository`` fixture.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from tubescribe.db import Video


class TestCreateAndGet:

    def test_create_assigns_id_and_defaults(self, repository):
        video = repository.create(filename="talk.mp4", file_url="/uploads/1_talk.mp4")
        assert len(video.id) == 32
        assert video.source == "upload"
        assert video.transcription is None
        assert video.created_at is not None

    def test_get_round_trip(self, repository):
        created = repository.create(
            filename="YouTube Video abc.youtube",
            file_url="https://youtu.be/abc",
            source="youtube",
            youtube_video_id="abc",
            transcription="0:00\nhi\n",
        )
        fetched = repository.get(created.id)
        assert fetched.youtube_video_id == "abc"
        assert fetched.transcription == "0:00\nhi\n"

    def test_get_unknown(self, repository):
        assert repository.get("missing") is None


class TestList:

    def test_newest_first(self, repository):
        now = datetime.now(timezone.utc)
        repository.create(filename="old.mp4", file_url="/uploads/old.mp4", created_at=now - timedelta(hours=1))
        repository.create(filename="new.mp4", file_url="/uploads/new.mp4", created_at=now)
        assert [v.filename for v in repository.list_videos()] == ["new.mp4", "old.mp4"]

    def test_empty(self, repository):
        assert repository.list_videos() == []


class TestUpdateAndDelete:

    def test_update_only_given_fields(self, repository):
        video = repository.create(filename="a.mp4", file_url="/uploads/a.mp4")
        updated = repository.update(video.id, transcription="0:00\nx\n")
        assert updated.transcription == "0:00\nx\n"
        assert updated.filename == "a.mp4"
        assert repository.get(video.id).transcription == "0:00\nx\n"

    def test_update_unknown(self, repository):
        assert repository.update("missing", transcription="x") is None

    def test_delete(self, repository):
        video = repository.create(filename="a.mp4", file_url="/uploads/a.mp4")
        deleted = repository.delete(video.id)
        assert deleted.id == video.id
        assert repository.get(video.id) is None

    def test_delete_unknown(self, repository):
        assert repository.delete("missing") is None


class TestToDict:

    def test_camel_case_keys_and_parsed_content(self, repository):
        content = {"titles": ["a"], "imageIdea": "rocket"}
        video = repository.create(
            filename="a.mp4",
            file_url="/uploads/a.mp4",
            generated_content=json.dumps(content),
            generated_image_url="https://images.test/a.png",
        )
        data = repository.get(video.id).to_dict()

        assert data["fileUrl"] == "/uploads/a.mp4"
        assert data["generatedContent"] == content
        assert data["generatedImageUrl"] == "https://images.test/a.png"
        assert data["youtubeVideoId"] is None
        assert isinstance(data["createdAt"], str)

    def test_repr(self):
        video = Video(id="abc", filename="a.mp4", source="upload")
        assert repr(video) == "<Video(id='abc', filename='a.mp4', source='upload')>"

