"""Command-line interface for TubeScribe.

WHY: The transcript pipelines are useful without the web front end:
transcribe a local recording, or pull a YouTube video's captions, and
pipe the result somewhere. The same entry point also starts the API
server.

HOW: argparse with three subcommands. ``serve`` runs uvicorn on the
FastAPI app; ``transcribe`` and ``youtube`` run the async pipelines via
asyncio.run(). Status messages go to stderr, the transcript to stdout.

RULES:
- Status output goes to stderr (not stdout)
- Exit code 1 on any handled failure, 130 on Ctrl-C
- Python 3.9+ compatible (no match/case, no X | Y unions)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from youtube_transcript_api import CouldNotRetrieveTranscript

from tubescribe import __version__
from tubescribe.config import API_HOST, API_PORT
from tubescribe.errors import (
    AudioProcessingError,
    CaptionsUnavailableError,
    InvalidYouTubeUrlError,
    UpstreamError,
    user_message,
)
from tubescribe.pipeline import fetch_youtube_transcript, transcribe_media


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    _status("Starting TubeScribe API on {}:{}".format(args.host, args.port))
    uvicorn.run("tubescribe.server.app:app", host=args.host, port=args.port, reload=args.reload)


def _cmd_transcribe(args: argparse.Namespace) -> None:
    input_path = Path(args.input_file)
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))

    _status("Transcribing {}...".format(input_path.name))
    try:
        transcript = asyncio.run(transcribe_media(input_path))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except UpstreamError as e:
        _fail(e.message)
    except (AudioProcessingError, ValueError) as e:
        # ValueError: missing API key
        _fail(str(e))

    _status("Done.")
    print(transcript, end="")


def _cmd_youtube(args: argparse.Namespace) -> None:
    _status("Fetching captions for {}...".format(args.url))
    try:
        result = asyncio.run(fetch_youtube_transcript(args.url))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except (InvalidYouTubeUrlError, CaptionsUnavailableError) as e:
        _fail(str(e))
    except UpstreamError as e:
        _fail(user_message(e, "YouTube transcript fetch"))
    except CouldNotRetrieveTranscript as e:
        # Blocked requests, failed YouTube responses and the like
        _fail(str(e))

    _status("Done. Video id: {}".format(result.video_id))
    print(result.transcription, end="")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser (kept separate so tests can inspect it)."""
    parser = argparse.ArgumentParser(
        prog="tubescribe",
        description="Timestamped transcripts from uploaded videos or YouTube captions.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug output to stderr.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API server.")
    serve.add_argument("--host", default=API_HOST, help="Bind address (default: %(default)s).")
    serve.add_argument("--port", type=int, default=API_PORT, help="Port (default: %(default)s).")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes.")
    serve.set_defaults(func=_cmd_serve)

    transcribe = sub.add_parser("transcribe", help="Transcribe a local video or audio file.")
    transcribe.add_argument("input_file", help="Path to the video or audio file.")
    transcribe.set_defaults(func=_cmd_transcribe)

    youtube = sub.add_parser("youtube", help="Fetch and format a YouTube video's captions.")
    youtube.add_argument("url", help="youtube.com/watch, youtu.be or embed URL.")
    youtube.set_defaults(func=_cmd_youtube)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``tubescribe`` and ``python -m tubescribe``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    args.func(args)


if __name__ == "__main__":
    main()
