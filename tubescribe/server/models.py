"""Pydantic request/response models for the HTTP API.

WHY: The web client speaks camelCase JSON with a ``success`` flag on
every reply. Typed models keep that contract in one place and show up in
the /docs UI.

HOW: Request bodies for the JSON routes are plain models; responses are
one model per route. Field names are the wire names, so no alias
configuration is needed.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Every failure is an ErrorResponse (success=false, message)
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class TranscribeRequest(BaseModel):
    videoId: Optional[str] = Field(default=None, description="Id of the stored video.")
    fileUrl: Optional[str] = Field(
        default=None,
        description="Public URL of the stored file, e.g. '/uploads/1700000000000_talk.mp4'.",
    )


class YouTubeTranscriptRequest(BaseModel):
    youtubeUrl: Optional[str] = Field(
        default=None,
        description="A youtube.com/watch, youtu.be or youtube.com/embed URL.",
    )


class GenerateRequest(BaseModel):
    transcription: Optional[str] = Field(
        default=None, description="Transcript to generate YouTube metadata from."
    )
    videoId: Optional[str] = Field(
        default=None, description="Video to store the generated content on (optional)."
    )


class GenerateImageRequest(BaseModel):
    idea: Optional[str] = Field(
        default=None, description="Short visual concept, e.g. 'robot coding laptop'."
    )
    videoId: Optional[str] = Field(
        default=None, description="Video to store the image URL on (optional)."
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    success: bool = Field(default=False, description="Always false for errors.")
    message: str = Field(description="Human-readable error message.")


class GeneratedContentModel(BaseModel):
    titles: List[str] = Field(description="Five title suggestions.")
    descriptions: List[str] = Field(description="Three description suggestions.")
    timestamps: List[str] = Field(description="Three timestamp blocks.")
    thumbnailTexts: List[str] = Field(description="Five thumbnail texts.")
    communityPosts: List[str] = Field(description="Three community posts.")
    imageIdea: str = Field(description="A 2-4 word icon concept.")


class VideoModel(BaseModel):
    """A stored video as listed in the library."""

    id: str = Field(description="Video id (uuid hex).")
    filename: str = Field(description="Original file name or YouTube title.")
    fileUrl: str = Field(description="Served URL of the file, or the YouTube URL.")
    source: str = Field(description="'upload' or 'youtube'.")
    youtubeVideoId: Optional[str] = Field(default=None, description="YouTube video id.")
    transcription: Optional[str] = Field(default=None, description="Formatted transcript.")
    generatedContent: Optional[GeneratedContentModel] = Field(
        default=None, description="Last generated YouTube metadata."
    )
    generatedImageUrl: Optional[str] = Field(default=None, description="Last generated icon URL.")
    createdAt: Optional[str] = Field(default=None, description="ISO 8601 creation time.")
    updatedAt: Optional[str] = Field(default=None, description="ISO 8601 last update time.")


class ChunkProgressResponse(BaseModel):
    """Reply to /upload-chunk: progress, or the finished upload."""

    success: bool = Field(default=True, description="True when the chunk was stored.")
    complete: bool = Field(description="True once every chunk has arrived and the file is assembled.")
    receivedChunks: Optional[int] = Field(default=None, description="Distinct chunks received so far.")
    totalChunks: Optional[int] = Field(default=None, description="Chunks expected for this upload.")
    videoId: Optional[str] = Field(default=None, description="Id of the created video (complete only).")
    filename: Optional[str] = Field(default=None, description="Original file name (complete only).")
    fileUrl: Optional[str] = Field(default=None, description="Served URL of the file (complete only).")


class UploadResponse(BaseModel):
    success: bool = Field(default=True, description="True on success.")
    videoId: str = Field(description="Id of the created video.")
    filename: str = Field(description="Original file name.")
    fileUrl: str = Field(description="Served URL of the stored file.")
    size: int = Field(description="Stored size in bytes.")


class TranscriptionResponse(BaseModel):
    success: bool = Field(default=True, description="True on success.")
    transcription: str = Field(description="Transcript as 'm:ss' lines.")


class YouTubeTranscriptResponse(BaseModel):
    success: bool = Field(default=True, description="True on success.")
    video: VideoModel = Field(description="The created video record.")
    transcription: str = Field(description="Transcript as 'm:ss' lines.")


class GenerateResponse(BaseModel):
    success: bool = Field(default=True, description="True on success.")
    content: GeneratedContentModel = Field(description="Generated YouTube metadata.")


class GenerateImageResponse(BaseModel):
    success: bool = Field(default=True, description="True on success.")
    imageUrl: str = Field(description="URL of the generated icon.")


class VideoListResponse(BaseModel):
    videos: List[VideoModel] = Field(description="Stored videos, newest first.")


class DeleteResponse(BaseModel):
    success: bool = Field(default=True, description="True on success.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service status. 'ok' when healthy.")
    version: str = Field(description="Application version string.")
