"""tubescribe: video transcripts and YouTube metadata from one upload.

WHY: Creators want titles, descriptions, timestamp blocks, thumbnail text,
community posts and an icon for each video. All of it starts from a
timestamped transcript, which in turn starts from a (possibly huge) video
upload or a YouTube URL.

HOW: Layers, each independently testable:
  core    : upload sessions, chunk reassembly, the transcript formatter
  adapters: turn speech-to-text words and caption snippets into TimedTokens
  api     : async httpx clients for transcription, chat and image APIs
  pipeline: ffmpeg + speech-to-text, and YouTube caption import
  db      : SQLAlchemy video records
  server  : FastAPI routes and response models

RULES:
- The formatter only ever sees TimedToken objects
- Chunk assembly happens at most once per upload session
- Upstream failures carry an ErrorKind; retries consult the kind only
"""

__version__ = "0.1.0"
