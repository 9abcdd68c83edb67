"""Tests for chunked upload reassembly.

WHY: A wrong byte order, a double assembly, or a leaked chunk file each
corrupts or duplicates a user's video. These tests pin down ordering,
idempotence, validation before I/O, exactly-once completion under
concurrency, and cleanup on failure.

HOW: Tests are organized by class, one per concern:
  - TestOrdering: any arrival order assembles in index order
  - TestProgress: receipts before completion
  - TestIdempotence: re-sent chunks and calls after completion
  - TestValidation: rejected requests leave no files behind
  - TestConcurrency: racing duplicate final chunks assemble once
  - TestFailures: missing chunks and failing hooks discard the session

RULES:
- Every test uses tmp_path-backed staging and upload directories
- Assertions check bytes on disk, not just receipts
"""

from __future__ import annotations

import itertools
import threading
import time

import pytest

from tubescribe.core.chunks import ChunkAssembler
from tubescribe.core.sessions import UploadSessionStore
from tubescribe.errors import AssemblyError, ChunkValidationError, SessionLimitError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _payloads(n: int):
    return [("chunk-{}|".format(i) * (i + 1)).encode() for i in range(n)]


def _send_all(assembler, session_id, payloads, order, filename="movie.mp4", **kwargs):
    receipt = None
    for index in order:
        receipt = assembler.receive_chunk(
            session_id, index, len(payloads), filename, payloads[index], **kwargs
        )
    return receipt


def _files(path):
    if not path.exists():
        return []
    return sorted(p.name for p in path.iterdir())


# ---------------------------------------------------------------------------
# TestOrdering
# ---------------------------------------------------------------------------


class TestOrdering:
    """Assembled bytes equal the payloads concatenated in index order."""

    @pytest.mark.parametrize("n", [1, 2, 3, 4])
    def test_every_arrival_order(self, tmp_path, n):
        payloads = _payloads(n)
        expected = b"".join(payloads)

        for run, order in enumerate(itertools.permutations(range(n))):
            store = UploadSessionStore(tmp_path / "staging")
            assembler = ChunkAssembler(store, tmp_path / "uploads")
            receipt = _send_all(assembler, "upload-{}".format(run), payloads, order)

            assert receipt.complete is True
            assert receipt.file.path.read_bytes() == expected
            assert receipt.file.size == len(expected)

    def test_empty_chunks_are_allowed(self, assembler):
        payloads = [b"", b"abc", b""]
        receipt = _send_all(assembler, "u1", payloads, [2, 0, 1])
        assert receipt.file.path.read_bytes() == b"abc"
        assert receipt.file.size == 3

    def test_output_name_is_stamped_and_sanitized(self, assembler):
        receipt = _send_all(assembler, "u1", [b"x"], [0], filename="my video (1).mp4")
        stored = receipt.file.stored_name
        stamp, _, name = stored.partition("_")
        assert stamp.isdigit()
        assert name == "my_video__1_.mp4"
        assert receipt.file.filename == "my_video__1_.mp4"

    def test_same_millisecond_uploads_get_distinct_names(self, assembler, monkeypatch):
        monkeypatch.setattr("tubescribe.core.chunks.time.time", lambda: 1700000000.0)
        first = _send_all(assembler, "a", [b"1"], [0], filename="clip.mp4")
        second = _send_all(assembler, "b", [b"2"], [0], filename="clip.mp4")

        assert first.file.stored_name == "1700000000000_clip.mp4"
        assert second.file.stored_name == "1700000000001_clip.mp4"
        assert second.file.path.read_bytes() == b"2"


# ---------------------------------------------------------------------------
# TestProgress
# ---------------------------------------------------------------------------


class TestProgress:

    def test_progress_receipts_count_distinct_chunks(self, assembler):
        payloads = _payloads(3)
        first = assembler.receive_chunk("u1", 1, 3, "f.mp4", payloads[1])
        again = assembler.receive_chunk("u1", 1, 3, "f.mp4", payloads[1])
        second = assembler.receive_chunk("u1", 0, 3, "f.mp4", payloads[0])

        assert (first.complete, first.received_chunks, first.total_chunks) == (False, 1, 3)
        assert again.received_chunks == 1
        assert second.received_chunks == 2
        assert second.file is None

    def test_chunk_files_are_staged_until_completion(self, assembler, store):
        assembler.receive_chunk("u1", 0, 2, "f.mp4", b"aa")
        session = store.get("u1")
        assert session.chunk_path(0).read_bytes() == b"aa"
        assert not session.chunk_path(1).exists()

    def test_completion_removes_chunks_and_session(self, assembler, store, staging_dir):
        _send_all(assembler, "u1", _payloads(3), [0, 1, 2])
        assert store.get("u1") is None
        assert _files(staging_dir) == []


# ---------------------------------------------------------------------------
# TestIdempotence
# ---------------------------------------------------------------------------


class TestIdempotence:

    def test_resent_chunk_does_not_change_output(self, assembler):
        payloads = _payloads(3)
        assembler.receive_chunk("u1", 0, 3, "f.mp4", payloads[0])
        assembler.receive_chunk("u1", 2, 3, "f.mp4", payloads[2])
        assembler.receive_chunk("u1", 0, 3, "f.mp4", payloads[0])
        receipt = assembler.receive_chunk("u1", 1, 3, "f.mp4", payloads[1])

        assert receipt.file.path.read_bytes() == b"".join(payloads)

    def test_hook_result_is_reported_once(self, assembler):
        calls = []

        def hook(assembled):
            calls.append(assembled)
            return "video-1"

        receipt = _send_all(assembler, "u1", _payloads(2), [1, 0], on_assembled=hook)
        assert receipt.record == "video-1"
        assert len(calls) == 1
        assert calls[0] == receipt.file


# ---------------------------------------------------------------------------
# TestValidation
# ---------------------------------------------------------------------------


class TestValidation:
    """Invalid requests raise ChunkValidationError and touch no files."""

    @pytest.mark.parametrize(
        "session_id, index, total, filename, data",
        [
            ("", 0, 1, "f.mp4", b"x"),
            ("u1", 0, 1, "", b"x"),
            ("u1", 0, 1, "f.mp4", None),
            ("u1", 0, 1, "f.mp4", "text"),
            ("u1", 0, 0, "f.mp4", b"x"),
            ("u1", -1, 2, "f.mp4", b"x"),
            ("u1", 2, 2, "f.mp4", b"x"),
        ],
    )
    def test_rejected_before_io(self, assembler, store, staging_dir, upload_dir,
                                session_id, index, total, filename, data):
        with pytest.raises(ChunkValidationError):
            assembler.receive_chunk(session_id, index, total, filename, data)

        assert store.list_sessions() == []
        assert _files(staging_dir) == []
        assert _files(upload_dir) == []

    def test_total_chunks_must_not_change(self, assembler, store):
        assembler.receive_chunk("u1", 0, 3, "f.mp4", b"a")
        with pytest.raises(ChunkValidationError):
            assembler.receive_chunk("u1", 1, 4, "f.mp4", b"b")

        session = store.get("u1")
        assert session.received_indices == {0}
        assert not session.chunk_path(1).exists()

    def test_session_limit(self, staging_dir, upload_dir):
        assembler = ChunkAssembler(UploadSessionStore(staging_dir, max_sessions=1), upload_dir)
        assembler.receive_chunk("u1", 0, 2, "f.mp4", b"a")
        with pytest.raises(SessionLimitError):
            assembler.receive_chunk("u2", 0, 2, "g.mp4", b"b")


# ---------------------------------------------------------------------------
# TestConcurrency
# ---------------------------------------------------------------------------


class TestConcurrency:

    def test_duplicate_final_chunk_assembles_once(self, assembler, upload_dir, staging_dir):
        payloads = _payloads(3)
        assembler.receive_chunk("u1", 0, 3, "f.mp4", payloads[0])
        assembler.receive_chunk("u1", 1, 3, "f.mp4", payloads[1])

        calls = []
        calls_lock = threading.Lock()

        def hook(assembled):
            with calls_lock:
                calls.append(assembled)
            time.sleep(0.2)
            return "video-1"

        barrier = threading.Barrier(4)
        receipts = []
        errors = []

        def worker():
            barrier.wait()
            try:
                receipts.append(
                    assembler.receive_chunk("u1", 2, 3, "f.mp4", payloads[2], on_assembled=hook)
                )
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(calls) == 1
        assert len(receipts) == 4
        assert all(r.complete and r.record == "video-1" for r in receipts)
        assert len(_files(upload_dir)) == 1
        assert _files(staging_dir) == []

    def test_independent_sessions_in_parallel(self, assembler, upload_dir):
        payloads = _payloads(4)

        def upload(session_id):
            _send_all(assembler, session_id, payloads, [3, 1, 0, 2],
                      filename="{}.mp4".format(session_id))

        threads = [threading.Thread(target=upload, args=("s{}".format(i),)) for i in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        outputs = list(upload_dir.iterdir())
        assert len(outputs) == 5
        assert all(p.read_bytes() == b"".join(payloads) for p in outputs)

    def test_ids_that_sanitize_alike_stay_separate(self, assembler):
        assembler.receive_chunk("up:1", 0, 2, "a.mp4", b"AAAA")
        assembler.receive_chunk("up?1", 0, 2, "a.mp4", b"BBBB")
        first = assembler.receive_chunk("up:1", 1, 2, "a.mp4", b"-end")
        second = assembler.receive_chunk("up?1", 1, 2, "a.mp4", b"-tail")

        assert first.file.path.read_bytes() == b"AAAA-end"
        assert second.file.path.read_bytes() == b"BBBB-tail"


# ---------------------------------------------------------------------------
# TestFailures
# ---------------------------------------------------------------------------


class TestFailures:

    def test_missing_chunk_discards_session(self, assembler, store, upload_dir, staging_dir):
        assembler.receive_chunk("u1", 0, 2, "f.mp4", b"a")
        store.get("u1").chunk_path(0).unlink()

        with pytest.raises(AssemblyError):
            assembler.receive_chunk("u1", 1, 2, "f.mp4", b"b")

        assert store.get("u1") is None
        assert _files(upload_dir) == []
        assert _files(staging_dir) == []

    def test_failing_hook_removes_output(self, assembler, store, upload_dir):
        def hook(assembled):
            raise RuntimeError("database down")

        with pytest.raises(RuntimeError):
            _send_all(assembler, "u1", _payloads(2), [0, 1], on_assembled=hook)

        assert store.get("u1") is None
        assert _files(upload_dir) == []

    def test_write_failure_leaves_no_temp_file(self, assembler, store, staging_dir, monkeypatch):
        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("tubescribe.core.chunks.os.replace", fail_replace)
        with pytest.raises(OSError):
            assembler.receive_chunk("u1", 0, 2, "f.mp4", b"a")

        assert _files(staging_dir) == []
        assert store.get("u1").received_indices == set()
