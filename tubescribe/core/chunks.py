"""Chunked upload reassembly.

WHY: Browsers and proxies choke on multi-gigabyte request bodies, so
the client slices a video into numbered chunks and sends them one by
one, in any order, sometimes twice. The server must store each chunk,
notice when the last one arrives, and stitch them back together exactly
once, in index order.

HOW: ChunkAssembler.receive_chunk() validates the request, writes the
chunk to "<staging_path>.part<index>" through a temp file and an atomic
rename, then takes the session's lock to record the index. The call
that completes the set concatenates part0..partN-1 into the upload
directory, removes the chunk files, runs the completion hook and
forgets the session.

RULES:
- Validation happens before any file I/O
- A re-sent index overwrites its chunk file; the output is unchanged
- Chunks are concatenated in index order, never arrival order
- Assembly and the completion hook run at most once per session
- A duplicate final chunk that loses the race gets the stored receipt
- A missing chunk file at assembly time discards the session
- Chunk file cleanup is best-effort; failures are logged, not raised
"""

from __future__ import annotations

import logging
import os
import shutil
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

from tubescribe.core.ir import AssembledFile, ChunkReceipt
from tubescribe.core.sessions import (
    UploadSession,
    UploadSessionStore,
    remove_chunk_files,
)
from tubescribe.errors import AssemblyError, ChunkValidationError

logger = logging.getLogger(__name__)

CompletionHook = Callable[[AssembledFile], Any]


def _validate_request(
    session_id: str,
    index: int,
    total_chunks: int,
    filename: str,
    data: bytes,
) -> None:
    if not session_id:
        raise ChunkValidationError("uploadId is required")
    if not filename:
        raise ChunkValidationError("filename is required")
    if not isinstance(data, (bytes, bytearray)):
        raise ChunkValidationError("chunk data must be bytes")
    if total_chunks < 1:
        raise ChunkValidationError(
            "totalChunks must be at least 1 (got {})".format(total_chunks)
        )
    if index < 0 or index >= total_chunks:
        raise ChunkValidationError(
            "chunkIndex {} out of range for {} chunks".format(index, total_chunks)
        )


def _validate_against_session(session: UploadSession, index: int, total_chunks: int) -> None:
    if total_chunks != session.total_chunks:
        raise ChunkValidationError(
            "totalChunks changed for upload {} ({} != {})".format(
                session.session_id, total_chunks, session.total_chunks
            )
        )
    if index >= session.total_chunks:
        raise ChunkValidationError(
            "chunkIndex {} out of range for {} chunks".format(index, session.total_chunks)
        )


class ChunkAssembler:
    """Receives chunks and reassembles completed uploads.

    Args:
        store: Session store shared by all requests.
        upload_dir: Destination directory for assembled files.
    """

    def __init__(self, store: UploadSessionStore, upload_dir: Path) -> None:
        self.store = store
        self.upload_dir = Path(upload_dir)

    def receive_chunk(
        self,
        session_id: str,
        index: int,
        total_chunks: int,
        filename: str,
        data: bytes,
        on_assembled: Optional[CompletionHook] = None,
    ) -> ChunkReceipt:
        """Store one chunk and assemble the upload if it was the last one.

        Args:
            session_id: Client-chosen upload id.
            index: Zero-based chunk index.
            total_chunks: Number of chunks in the upload.
            filename: Original file name (sanitized before use).
            data: Chunk payload; may be empty.
            on_assembled: Called once with the AssembledFile; its return
                value is reported as ChunkReceipt.record.

        Returns:
            Progress receipt, or the completion receipt.

        Raises:
            ChunkValidationError: bad input, nothing written.
            AssemblyError: a chunk file was missing at assembly time.
            OSError: chunk or final file could not be written.
        """
        _validate_request(session_id, index, total_chunks, filename, data)

        session = self.store.get_or_create(session_id, filename, total_chunks)
        _validate_against_session(session, index, total_chunks)

        if session.completion is not None:
            return session.completion

        self._write_chunk(session, index, data)

        with session.lock:
            if session.completion is not None:
                # Lost the race to the assembling request; drop the late copy.
                _unlink_quietly(session.chunk_path(index))
                return session.completion

            session.received_indices.add(index)
            session.updated_at = time.time()
            logger.info(
                "Received chunk %d/%d for upload %s",
                index + 1, session.total_chunks, session_id,
            )

            if not session.is_complete:
                return ChunkReceipt(
                    complete=False,
                    received_chunks=len(session.received_indices),
                    total_chunks=session.total_chunks,
                )

            try:
                assembled = self._assemble(session)
            except Exception:
                self.store.discard(session_id, session)
                remove_chunk_files(session)
                raise

            try:
                record = on_assembled(assembled) if on_assembled is not None else None
            except Exception:
                self.store.discard(session_id, session)
                _unlink_quietly(assembled.path)
                raise

            receipt = ChunkReceipt(
                complete=True,
                received_chunks=session.total_chunks,
                total_chunks=session.total_chunks,
                file=assembled,
                record=record,
            )
            session.completion = receipt
            self.store.discard(session_id, session)

        return receipt

    @staticmethod
    def _write_chunk(session: UploadSession, index: int, data: bytes) -> None:
        """Write a chunk file atomically (temp file + rename)."""
        final_path = session.chunk_path(index)
        final_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = final_path.with_name(
            "{}.tmp-{}".format(final_path.name, uuid.uuid4().hex)
        )
        try:
            tmp_path.write_bytes(bytes(data))
            os.replace(tmp_path, final_path)
        except OSError:
            _unlink_quietly(tmp_path)
            raise

    def _assemble(self, session: UploadSession) -> AssembledFile:
        """Concatenate part0..partN-1 into a new file in the upload dir.

        RULES:
        - Output name is "<epoch-ms>_<sanitized filename>"; the millisecond
          stamp is bumped until the name is free
        - On any failure the partial output is removed
        - Chunk files are deleted after a successful write
        """
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("All chunks received for upload %s, assembling", session.session_id)

        stamp = int(time.time() * 1000)
        while True:
            stored_name = "{}_{}".format(stamp, session.original_filename)
            final_path = self.upload_dir / stored_name
            try:
                out = open(final_path, "xb")
            except FileExistsError:
                stamp += 1
                continue
            break

        try:
            with out:
                for index in range(session.total_chunks):
                    chunk_path = session.chunk_path(index)
                    try:
                        with open(chunk_path, "rb") as src:
                            shutil.copyfileobj(src, out)
                    except FileNotFoundError:
                        raise AssemblyError(
                            "Chunk {} of upload {} is missing".format(
                                index, session.session_id
                            )
                        )
                size = out.tell()
        except Exception:
            _unlink_quietly(final_path)
            raise

        remove_chunk_files(session)
        logger.info("Assembled upload %s into %s (%d bytes)", session.session_id, final_path, size)

        return AssembledFile(
            filename=session.original_filename,
            stored_name=stored_name,
            path=final_path,
            size=size,
        )


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Failed to remove file: %s", path)
