"""Capture → analyze → verify → commit state machine."""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .camera import CapturedFrame
from .db.count_log import CountLogEntry, LogStore
from .vision import AnalysisFailure, VisionBackend, analyze

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to analyze image."


class CaptureStatus(str, enum.Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass
class PendingVerification:
    count: int
    image: CapturedFrame


class VerificationStage:
    """Owns the single pending result awaiting a human decision.

    Every operation is a no-op when nothing is pending.
    """

    def __init__(
        self,
        log_store: LogStore,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self._log_store = log_store
        self._on_close = on_close
        self._pending: PendingVerification | None = None

    @property
    def pending(self) -> PendingVerification | None:
        return self._pending

    def open(self, count: int, image: CapturedFrame) -> PendingVerification:
        """Replace any pending result with a new one."""
        self._pending = PendingVerification(count=max(0, count), image=image)
        return self._pending

    def adjust(self, delta: int) -> int | None:
        """Shift the pending count by *delta*, never below zero."""
        if self._pending is None:
            return None
        self._pending.count = max(0, self._pending.count + delta)
        return self._pending.count

    def commit(self, notes: str | None = None) -> CountLogEntry | None:
        """Write the pending count to the log and close verification."""
        if self._pending is None:
            return None
        entry = CountLogEntry(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            count=self._pending.count,
            image_url=self._pending.image.to_data_uri(),
            notes=notes,
        )
        self._log_store.prepend(entry)
        self._close()
        return entry

    def discard(self) -> None:
        """Drop the pending result without touching the log."""
        self._close()

    def reset(self) -> None:
        """Drop the pending result without notifying the owner."""
        self._pending = None

    def _close(self) -> None:
        self._pending = None
        if self._on_close is not None:
            self._on_close()


class CapturePipeline:
    """Sends captured frames to the vision backend, one call at a time.

    A result that arrives after the pending verification was discarded still
    opens a new pending verification. Only one analysis call may be in flight,
    so a discard during analysis cannot lead to overlapping calls.
    """

    def __init__(self, backend: VisionBackend, log_store: LogStore) -> None:
        self._backend = backend
        self.status = CaptureStatus.IDLE
        self.error_message: str | None = None
        self.verification = VerificationStage(log_store, on_close=self._reset)
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    @property
    def pending(self) -> PendingVerification | None:
        return self.verification.pending

    async def capture(self, frame: CapturedFrame) -> bool:
        """Analyze *frame*. Returns False if a call is already outstanding."""
        if self._in_flight:
            logger.warning("Capture rejected: analysis already in progress")
            return False

        self._in_flight = True
        self.status = CaptureStatus.ANALYZING
        self.error_message = None
        self.verification.reset()
        try:
            outcome = await analyze(self._backend, frame)
        except asyncio.CancelledError:
            if self.status is CaptureStatus.ANALYZING:
                self.status = CaptureStatus.IDLE
            logger.info("Analysis cancelled")
            raise
        finally:
            self._in_flight = False

        if isinstance(outcome, AnalysisFailure):
            self.status = CaptureStatus.ERROR
            self.error_message = outcome.message or DEFAULT_ERROR_MESSAGE
            logger.info("Analysis failed: %s", self.error_message)
        else:
            self.verification.open(outcome.count, frame)
            self.status = CaptureStatus.SUCCESS
            logger.info("Analysis counted %d", outcome.count)
        return True

    def _reset(self) -> None:
        self.status = CaptureStatus.IDLE
        self.error_message = None
