"""FastAPI application: uploads, transcription, YouTube import, generation.

WHY: The browser front end needs one HTTP API to upload videos (whole or
in chunks), get transcripts, import YouTube captions, generate YouTube
metadata and icons, and manage the video library.

HOW: A single FastAPI app exposes the routes below. Chunk reassembly is
delegated to a ChunkAssembler running in a worker thread; transcripts
come from tubescribe.pipeline; generation goes through the hosted API
clients; records live in a VideoRepository. The repository, assembler and
upload directory are FastAPI dependencies so tests can override them.

RULES:
- Every failure is answered as {"success": false, "message": ...}
- /upload-chunk validates all form fields before any disk I/O
- A chunked upload creates exactly one video row, inside the assembler
- Idle upload sessions are evicted every 5 minutes by a lifespan task
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from tubescribe import __version__
from tubescribe.api.client import OpenAIImageClient, OpenRouterClient
from tubescribe.config import (
    API_HOST,
    API_PORT,
    DATABASE_URL,
    MAX_UPLOAD_SESSIONS,
    STAGING_DIR,
    UPLOAD_DIR,
    UPLOAD_SESSION_TTL_SECONDS,
    UPLOAD_URL_PREFIX,
)
from tubescribe.core.chunks import ChunkAssembler
from tubescribe.core.ir import AssembledFile
from tubescribe.core.sessions import UploadSessionStore, sanitize_filename
from tubescribe.db import Video, VideoRepository
from tubescribe.errors import (
    AudioProcessingError,
    CaptionsUnavailableError,
    ChunkValidationError,
    ErrorKind,
    InvalidYouTubeUrlError,
    SessionLimitError,
    UpstreamError,
    user_message,
)
from tubescribe.pipeline import fetch_youtube_transcript, transcribe_media
from tubescribe.server.models import (
    ChunkProgressResponse,
    DeleteResponse,
    ErrorResponse,
    GenerateImageRequest,
    GenerateImageResponse,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    TranscribeRequest,
    TranscriptionResponse,
    UploadResponse,
    VideoListResponse,
    VideoModel,
    YouTubeTranscriptRequest,
    YouTubeTranscriptResponse,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

session_store = UploadSessionStore(
    STAGING_DIR,
    ttl_seconds=UPLOAD_SESSION_TTL_SECONDS,
    max_sessions=MAX_UPLOAD_SESSIONS,
)
repository = VideoRepository(DATABASE_URL)
assembler = ChunkAssembler(session_store, UPLOAD_DIR)


def get_repository() -> VideoRepository:
    return repository


def get_assembler() -> ChunkAssembler:
    return assembler


def get_upload_dir() -> Path:
    return UPLOAD_DIR


async def _periodic_cleanup() -> None:
    """Evict idle upload sessions every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        evicted = await asyncio.to_thread(session_store.evict_idle)
        if evicted:
            logger.info("Evicted %d idle upload sessions", evicted)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and start periodic cleanup on startup."""
    repository.init_schema()
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="TubeScribe API",
    description=(
        "Upload videos or import YouTube captions, get timestamped "
        "transcripts, and generate YouTube titles, descriptions, "
        "timestamps, thumbnail texts, community posts and icons."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.mount(
    UPLOAD_URL_PREFIX,
    StaticFiles(directory=str(UPLOAD_DIR), check_dir=False),
    name="uploads",
)


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
    )


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request body"},
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_UPSTREAM_STATUS = {
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
}


def _upstream_http_error(exc: UpstreamError, action: str) -> HTTPException:
    return HTTPException(
        status_code=_UPSTREAM_STATUS.get(exc.kind, 500),
        detail=user_message(exc, action),
    )


def _file_url(stored_name: str) -> str:
    return "{}/{}".format(UPLOAD_URL_PREFIX, stored_name)


def _stored_path(file_url: str, upload_dir: Path) -> Optional[Path]:
    """Map a served /uploads URL back to its file; None for other URLs."""
    prefix = UPLOAD_URL_PREFIX + "/"
    if not file_url or not file_url.startswith(prefix):
        return None
    name = Path(file_url[len(prefix):]).name
    if not name:
        return None
    return upload_dir / name


def _video_model(video: Video) -> VideoModel:
    return VideoModel(**video.to_dict())


def _parse_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Endpoints: Uploads
# ---------------------------------------------------------------------------


@app.post(
    "/upload-chunk",
    response_model=ChunkProgressResponse,
    response_model_exclude_none=True,
    tags=["uploads"],
    summary="Upload one chunk of a large file",
    description=(
        "Multipart form with 'chunk' (bytes), 'chunkIndex', 'totalChunks', "
        "'filename' and 'uploadId'. Chunks may arrive in any order and may be "
        "resent. When the last missing chunk arrives the file is assembled, "
        "a video record is created, and its id is returned."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid chunk data"},
        429: {"model": ErrorResponse, "description": "Too many concurrent uploads"},
        500: {"model": ErrorResponse, "description": "Chunk could not be stored or assembled"},
    },
)
async def upload_chunk(
    request: Request,
    chunk_assembler: ChunkAssembler = Depends(get_assembler),
    repo: VideoRepository = Depends(get_repository),
) -> ChunkProgressResponse:
    form = await request.form()
    chunk = form.get("chunk")
    index = _parse_int(form.get("chunkIndex"))
    total = _parse_int(form.get("totalChunks"))
    filename = form.get("filename")
    upload_id = form.get("uploadId")

    if (
        chunk is None
        or isinstance(chunk, str)
        or index is None
        or total is None
        or not filename
        or not upload_id
    ):
        raise HTTPException(status_code=400, detail="Missing required chunk data")

    data = await chunk.read()

    def _create_video(assembled: AssembledFile) -> Video:
        return repo.create(
            filename=assembled.filename,
            file_url=_file_url(assembled.stored_name),
            source="upload",
        )

    try:
        receipt = await asyncio.to_thread(
            chunk_assembler.receive_chunk,
            str(upload_id),
            index,
            total,
            str(filename),
            data,
            _create_video,
        )
    except ChunkValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SessionLimitError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    except Exception:
        logger.exception("Chunk upload failed for upload %s", upload_id)
        raise HTTPException(status_code=500, detail="Chunk upload failed")

    if not receipt.complete:
        return ChunkProgressResponse(
            complete=False,
            receivedChunks=receipt.received_chunks,
            totalChunks=receipt.total_chunks,
        )

    video = receipt.record
    return ChunkProgressResponse(
        complete=True,
        videoId=video.id,
        filename=video.filename,
        fileUrl=video.file_url,
    )


@app.post(
    "/upload",
    response_model=UploadResponse,
    tags=["uploads"],
    summary="Upload a whole video file",
    description="Single multipart upload for files small enough to send in one request.",
    responses={
        400: {"model": ErrorResponse, "description": "No file, or not a video"},
    },
)
async def upload_video(
    file: Annotated[Optional[UploadFile], File(description="Video file (video/* content type)")] = None,
    repo: VideoRepository = Depends(get_repository),
    upload_dir: Path = Depends(get_upload_dir),
) -> UploadResponse:
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if not (file.content_type or "").startswith("video/"):
        raise HTTPException(status_code=400, detail="Only video files are allowed")

    original = Path(file.filename or "video").name
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_name = "{}_{}".format(int(time.time() * 1000), sanitize_filename(original))
    path = upload_dir / stored_name

    content = await file.read()
    await asyncio.to_thread(path.write_bytes, content)

    video = await asyncio.to_thread(
        repo.create, filename=original, file_url=_file_url(stored_name), source="upload"
    )
    logger.info("Stored upload %s (%d bytes)", stored_name, len(content))
    return UploadResponse(
        videoId=video.id,
        filename=original,
        fileUrl=video.file_url,
        size=len(content),
    )


# ---------------------------------------------------------------------------
# Endpoints: Transcripts
# ---------------------------------------------------------------------------


@app.post(
    "/transcribe",
    response_model=TranscriptionResponse,
    tags=["transcripts"],
    summary="Transcribe a stored video",
    description=(
        "Extracts the audio, sends it to the speech-to-text API (split into "
        "10-minute pieces when large) and stores the timestamped transcript."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Missing videoId or fileUrl"},
        404: {"model": ErrorResponse, "description": "Unknown video or missing file"},
        500: {"model": ErrorResponse, "description": "Transcription failed"},
    },
)
async def transcribe(
    body: TranscribeRequest,
    repo: VideoRepository = Depends(get_repository),
    upload_dir: Path = Depends(get_upload_dir),
) -> TranscriptionResponse:
    if not body.videoId or not body.fileUrl:
        raise HTTPException(status_code=400, detail="Video ID and file URL are required")

    video = await asyncio.to_thread(repo.get, body.videoId)
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")

    path = _stored_path(body.fileUrl, upload_dir)
    if path is None or not path.exists():
        raise HTTPException(status_code=404, detail="Video file not found")

    try:
        transcription = await transcribe_media(path)
    except UpstreamError as exc:
        raise _upstream_http_error(exc, "Transcription")
    except AudioProcessingError as exc:
        logger.error("Audio processing failed for %s: %s", body.videoId, exc)
        raise HTTPException(status_code=500, detail="Failed to process audio: {}".format(exc))
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    await asyncio.to_thread(repo.update, body.videoId, transcription=transcription)
    return TranscriptionResponse(transcription=transcription)


@app.post(
    "/youtube-transcript",
    response_model=YouTubeTranscriptResponse,
    tags=["transcripts"],
    summary="Import captions from a YouTube video",
    description="Fetches the video's captions, formats them, and stores a 'youtube' video record.",
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid YouTube URL"},
        404: {"model": ErrorResponse, "description": "No captions available"},
        500: {"model": ErrorResponse, "description": "Caption fetch failed"},
    },
)
async def youtube_transcript(
    body: YouTubeTranscriptRequest,
    repo: VideoRepository = Depends(get_repository),
) -> YouTubeTranscriptResponse:
    if not body.youtubeUrl:
        raise HTTPException(status_code=400, detail="YouTube URL is required")

    try:
        result = await fetch_youtube_transcript(body.youtubeUrl)
    except InvalidYouTubeUrlError:
        raise HTTPException(status_code=400, detail="Invalid YouTube URL")
    except CaptionsUnavailableError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except UpstreamError as exc:
        logger.error("Caption fetch failed for %s: %s", body.youtubeUrl, exc)
        raise _upstream_http_error(exc, "YouTube transcript fetch")
    except Exception:
        logger.exception("Caption fetch failed for %s", body.youtubeUrl)
        raise HTTPException(status_code=500, detail="Failed to fetch YouTube transcript")

    video = await asyncio.to_thread(
        repo.create,
        filename="YouTube Video {}.youtube".format(result.video_id),
        file_url=result.url,
        source="youtube",
        youtube_video_id=result.video_id,
        transcription=result.transcription,
    )
    return YouTubeTranscriptResponse(
        video=_video_model(video),
        transcription=result.transcription,
    )


# ---------------------------------------------------------------------------
# Endpoints: Generation
# ---------------------------------------------------------------------------


@app.post(
    "/generate",
    response_model=GenerateResponse,
    tags=["generation"],
    summary="Generate YouTube metadata from a transcript",
    description=(
        "Asks the chat model for titles, descriptions, timestamp blocks, "
        "thumbnail texts, community posts and an icon idea. Stored on the "
        "video when videoId is given."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Missing transcription"},
        404: {"model": ErrorResponse, "description": "Unknown videoId"},
        500: {"model": ErrorResponse, "description": "Generation failed"},
    },
)
async def generate(
    body: GenerateRequest,
    repo: VideoRepository = Depends(get_repository),
) -> GenerateResponse:
    if not body.transcription:
        raise HTTPException(status_code=400, detail="Transcription is required")

    try:
        async with OpenRouterClient() as client:
            content = await client.generate_content(body.transcription)
    except UpstreamError as exc:
        logger.error("Content generation failed: %s", exc)
        raise _upstream_http_error(exc, "Content generation")
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    payload = content.to_dict()
    if body.videoId:
        updated = await asyncio.to_thread(
            repo.update, body.videoId, generated_content=json.dumps(payload)
        )
        if updated is None:
            raise HTTPException(status_code=404, detail="Video not found")
    return GenerateResponse(content=payload)


@app.post(
    "/generate-image",
    response_model=GenerateImageResponse,
    tags=["generation"],
    summary="Generate an icon for an image idea",
    responses={
        400: {"model": ErrorResponse, "description": "Missing idea"},
        404: {"model": ErrorResponse, "description": "Unknown videoId"},
        500: {"model": ErrorResponse, "description": "Image generation failed"},
    },
)
async def generate_image(
    body: GenerateImageRequest,
    repo: VideoRepository = Depends(get_repository),
) -> GenerateImageResponse:
    if not body.idea:
        raise HTTPException(status_code=400, detail="Image idea is required")

    try:
        async with OpenAIImageClient() as client:
            image_url = await client.generate_icon(body.idea)
    except UpstreamError as exc:
        logger.error("Image generation failed: %s", exc)
        raise _upstream_http_error(exc, "Image generation")
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    if body.videoId:
        updated = await asyncio.to_thread(
            repo.update, body.videoId, generated_image_url=image_url
        )
        if updated is None:
            raise HTTPException(status_code=404, detail="Video not found")
    return GenerateImageResponse(imageUrl=image_url)


# ---------------------------------------------------------------------------
# Endpoints: Library
# ---------------------------------------------------------------------------


@app.get(
    "/videos",
    response_model=VideoListResponse,
    tags=["videos"],
    summary="List stored videos",
    description="All uploaded and imported videos, newest first.",
)
async def list_videos(
    repo: VideoRepository = Depends(get_repository),
) -> VideoListResponse:
    videos = await asyncio.to_thread(repo.list_videos)
    return VideoListResponse(videos=[_video_model(v) for v in videos])


@app.delete(
    "/videos/{video_id}",
    response_model=DeleteResponse,
    tags=["videos"],
    summary="Delete a video",
    description="Deletes the video record and, for uploads, the stored file.",
    responses={
        404: {"model": ErrorResponse, "description": "Video not found"},
    },
)
async def delete_video(
    video_id: str,
    repo: VideoRepository = Depends(get_repository),
    upload_dir: Path = Depends(get_upload_dir),
) -> DeleteResponse:
    video = await asyncio.to_thread(repo.get, video_id)
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")

    if video.source == "upload":
        path = _stored_path(video.file_url, upload_dir)
        if path is not None:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Failed to delete file %s: %s", path, exc)

    await asyncio.to_thread(repo.delete, video_id)
    return DeleteResponse()


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the tubescribe-api console script."""
    import uvicorn
    uvicorn.run(app, host=API_HOST, port=API_PORT)
