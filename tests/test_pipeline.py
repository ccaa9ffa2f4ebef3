"""Tests for the capture → verify → commit state machine."""

import asyncio

import pytest

from kachori.camera import CapturedFrame
from kachori.db.count_log import CountLogEntry, LogStore
from kachori.db.kv import KeyValueStore
from kachori.pipeline import (
    DEFAULT_ERROR_MESSAGE,
    CapturePipeline,
    CaptureStatus,
)
from kachori.vision import AnalysisResult, VisionBackend

FRAME = CapturedFrame(data=b"tray-photo")


class FakeBackend(VisionBackend):
    """Returns a fixed count, or raises if *error* is set."""

    def __init__(self, count: int = 3, error: Exception | None = None):
        self.count = count
        self.error = error
        self.calls = 0

    async def count_items(self, frame):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return AnalysisResult(count=self.count, raw_text=f'{{"count": {self.count}}}')


class GatedBackend(VisionBackend):
    """Blocks until release is set, so tests can act mid-analysis."""

    def __init__(self, count: int = 2):
        self.count = count
        self.release = asyncio.Event()
        self.calls = 0

    async def count_items(self, frame):
        self.calls += 1
        await self.release.wait()
        return AnalysisResult(count=self.count, raw_text=str(self.count))


@pytest.fixture
def log_store(tmp_path):
    storage = KeyValueStore(db_path=tmp_path / "test.db")
    store = LogStore(storage)
    store.load()
    yield store
    storage.close()


@pytest.fixture
def seeded_log_store(log_store):
    log_store.prepend(CountLogEntry(id="old", timestamp="t", count=9, image_url="u"))
    return log_store


class TestCapture:
    @pytest.mark.asyncio
    async def test_success_opens_pending(self, log_store):
        pipeline = CapturePipeline(FakeBackend(count=3), log_store)
        assert pipeline.status is CaptureStatus.IDLE

        assert await pipeline.capture(FRAME) is True

        assert pipeline.status is CaptureStatus.SUCCESS
        assert pipeline.pending.count == 3
        assert pipeline.pending.image is FRAME
        assert pipeline.error_message is None

    @pytest.mark.asyncio
    async def test_failure_surfaces_message(self, seeded_log_store):
        """A failed call sets ERROR, keeps the message, creates nothing."""
        backend = FakeBackend(error=ConnectionError("network error"))
        pipeline = CapturePipeline(backend, seeded_log_store)

        await pipeline.capture(FRAME)

        assert pipeline.status is CaptureStatus.ERROR
        assert pipeline.error_message == "network error"
        assert pipeline.pending is None
        assert [e.id for e in seeded_log_store] == ["old"]
        assert backend.calls == 1  # no automatic retry

    @pytest.mark.asyncio
    async def test_failure_without_message_uses_default(self, log_store):
        pipeline = CapturePipeline(FakeBackend(error=RuntimeError()), log_store)
        await pipeline.capture(FRAME)
        assert pipeline.error_message == DEFAULT_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_retry_after_error_clears_message(self, log_store):
        backend = FakeBackend(error=ConnectionError("network error"))
        pipeline = CapturePipeline(backend, log_store)
        await pipeline.capture(FRAME)

        backend.error = None
        await pipeline.capture(FRAME)

        assert pipeline.status is CaptureStatus.SUCCESS
        assert pipeline.error_message is None

    @pytest.mark.asyncio
    async def test_second_capture_replaces_pending(self, log_store):
        """Only one pending verification ever exists."""
        backend = FakeBackend(count=3)
        pipeline = CapturePipeline(backend, log_store)
        await pipeline.capture(FRAME)

        backend.count = 5
        other = CapturedFrame(data=b"second")
        await pipeline.capture(other)

        assert pipeline.pending.count == 5
        assert pipeline.pending.image is other

    @pytest.mark.asyncio
    async def test_capture_while_analyzing_is_rejected(self, log_store):
        backend = GatedBackend()
        pipeline = CapturePipeline(backend, log_store)

        task = asyncio.create_task(pipeline.capture(FRAME))
        await asyncio.sleep(0)
        assert pipeline.status is CaptureStatus.ANALYZING
        assert pipeline.busy

        assert await pipeline.capture(FRAME) is False

        backend.release.set()
        assert await task is True
        assert backend.calls == 1
        assert not pipeline.busy
        assert pipeline.status is CaptureStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_cancelled_analysis_returns_to_idle(self, log_store):
        pipeline = CapturePipeline(GatedBackend(), log_store)

        task = asyncio.create_task(pipeline.capture(FRAME))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert pipeline.status is CaptureStatus.IDLE
        assert not pipeline.busy
        assert pipeline.pending is None
        assert pipeline.error_message is None

    @pytest.mark.asyncio
    async def test_result_after_discard_still_opens_pending(self, log_store):
        """A call in flight during discard is not cancelled or ignored."""
        backend = GatedBackend(count=4)
        pipeline = CapturePipeline(backend, log_store)

        task = asyncio.create_task(pipeline.capture(FRAME))
        await asyncio.sleep(0)
        pipeline.verification.discard()
        assert pipeline.status is CaptureStatus.IDLE
        # Still one call outstanding, so a new capture is refused
        assert await pipeline.capture(FRAME) is False

        backend.release.set()
        await task

        assert pipeline.status is CaptureStatus.SUCCESS
        assert pipeline.pending.count == 4
        assert len(log_store) == 0


class TestVerification:
    @pytest.mark.asyncio
    async def test_adjust_then_commit(self, log_store):
        """count 3, two decrements, commit → head entry with count 1."""
        pipeline = CapturePipeline(FakeBackend(count=3), log_store)
        await pipeline.capture(FRAME)

        pipeline.verification.adjust(-1)
        pipeline.verification.adjust(-1)
        assert pipeline.pending.count == 1

        entry = pipeline.verification.commit()

        assert log_store.entries[0] is entry
        assert entry.count == 1
        assert pipeline.pending is None
        assert pipeline.status is CaptureStatus.IDLE

    @pytest.mark.asyncio
    async def test_adjust_floors_at_zero(self, log_store):
        pipeline = CapturePipeline(FakeBackend(count=2), log_store)
        await pipeline.capture(FRAME)

        for _ in range(4):
            pipeline.verification.adjust(-1)
        assert pipeline.pending.count == 0

        pipeline.verification.adjust(-100)
        assert pipeline.pending.count == 0
        assert pipeline.verification.adjust(3) == 3

    @pytest.mark.asyncio
    async def test_commit_entry_fields(self, seeded_log_store):
        pipeline = CapturePipeline(FakeBackend(count=5), seeded_log_store)
        await pipeline.capture(FRAME)

        entry = pipeline.verification.commit(notes="morning batch")

        assert entry.count == 5
        assert entry.image_url == FRAME.to_data_uri()
        assert entry.notes == "morning batch"
        assert entry.id != "old"
        assert entry.timestamp
        assert [e.id for e in seeded_log_store] == [entry.id, "old"]

    @pytest.mark.asyncio
    async def test_commit_ids_are_unique(self, log_store):
        pipeline = CapturePipeline(FakeBackend(count=1), log_store)
        ids = set()
        for _ in range(5):
            await pipeline.capture(FRAME)
            ids.add(pipeline.verification.commit().id)
        assert len(ids) == 5

    @pytest.mark.asyncio
    async def test_discard_leaves_log_untouched(self, seeded_log_store):
        pipeline = CapturePipeline(FakeBackend(count=5), seeded_log_store)
        await pipeline.capture(FRAME)
        before = seeded_log_store.entries

        pipeline.verification.discard()

        assert seeded_log_store.entries == before
        assert pipeline.pending is None
        assert pipeline.status is CaptureStatus.IDLE

    @pytest.mark.asyncio
    async def test_commit_with_unwritable_storage_closes_pending(self, tmp_path, caplog):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = LogStore(KeyValueStore(db_path=blocker / "kachori.db"))
        store.load()
        pipeline = CapturePipeline(FakeBackend(count=4), store)
        await pipeline.capture(FRAME)

        entry = pipeline.verification.commit()

        assert pipeline.pending is None
        assert pipeline.status is CaptureStatus.IDLE
        assert pipeline.verification.commit() is None
        assert store.entries == (entry,)
        assert "Failed to save logs" in caplog.text

    def test_operations_without_pending_are_noops(self, seeded_log_store):
        pipeline = CapturePipeline(FakeBackend(), seeded_log_store)
        verification = pipeline.verification

        assert verification.adjust(1) is None
        assert verification.commit() is None
        verification.discard()

        assert pipeline.pending is None
        assert [e.id for e in seeded_log_store] == ["old"]
        assert pipeline.status is CaptureStatus.IDLE
