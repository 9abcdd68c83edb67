"""Core reassembly and formatting modules.

WHY: The two pieces of this app with real invariants live here: chunked
upload reassembly and the bucketed transcript formatter. Everything else
is glue around them.

HOW: ir.py defines the shared dataclasses, chunks.py reassembles uploads,
transcript.py formats TimedToken streams into timestamped lines.

RULES:
- No HTTP, database or third-party API code in this package
- transcript.py is pure; chunks.py only touches the filesystem
"""
