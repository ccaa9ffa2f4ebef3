"""View routing between the counter and the always-on assistant.

The assistant surface is mounted once and only shown or hidden afterwards, so
its session survives every mode switch. The counter surface is created when
counter mode is entered and torn down when it is left; the capture state it
drives lives in the application container, not in the surface.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable

from .camera import CapturedFrame, WebcamCapture
from .live.assistant import LiveSession
from .pipeline import CapturePipeline

logger = logging.getLogger(__name__)


class Mode(str, enum.Enum):
    COUNTER = "counter"
    ASSISTANT = "assistant"


class AssistantSurface:
    """Visibility wrapper around the single live session."""

    def __init__(self, session: LiveSession) -> None:
        self.session = session
        self.visible = False
        self._mounted = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    async def mount(self) -> None:
        if self._mounted:
            return
        await self.session.start()
        self._mounted = True
        logger.info("Assistant surface mounted")

    async def unmount(self) -> None:
        if not self._mounted:
            return
        await self.session.stop()
        self._mounted = False
        logger.info("Assistant surface unmounted")

    async def send(self, text: str) -> str:
        return await self.session.send(text)


class CounterSurface:
    """Binds a camera to the capture pipeline while counter mode is active."""

    def __init__(
        self, pipeline: CapturePipeline, camera: WebcamCapture | None = None
    ) -> None:
        self.pipeline = pipeline
        self.camera = camera
        self.mounted = False

    def mount(self) -> None:
        if self.camera is not None:
            try:
                self.camera.open()
            except (ImportError, RuntimeError) as e:
                logger.warning("Camera unavailable, image files only: %s", e)
                self.camera = None
        self.mounted = True
        logger.info("Counter surface mounted")

    def unmount(self) -> None:
        if self.camera is not None:
            self.camera.close()
        self.mounted = False
        logger.info("Counter surface unmounted")

    @property
    def busy(self) -> bool:
        return self.pipeline.busy

    async def capture(self, frame: CapturedFrame | None = None) -> bool:
        """Analyze *frame*, or a fresh camera frame if none is given."""
        if self.pipeline.busy:
            return False
        if frame is None:
            if self.camera is None:
                raise RuntimeError("No camera available; pass an image instead")
            frame = self.camera.grab()
            self.camera.busy = True
        try:
            return await self.pipeline.capture(frame)
        finally:
            if self.camera is not None:
                self.camera.busy = False


class SessionModeManager:
    """Holds the active Mode and keeps surface lifecycles in step with it."""

    def __init__(
        self,
        assistant: AssistantSurface,
        counter_factory: Callable[[], CounterSurface],
        mode: Mode | str = Mode.ASSISTANT,
    ) -> None:
        self.assistant = assistant
        self._counter_factory = counter_factory
        self._counter: CounterSurface | None = None
        self._mode = Mode(mode)

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def counter(self) -> CounterSurface | None:
        return self._counter

    async def start(self) -> None:
        """Mount the assistant surface and apply the current mode."""
        await self.assistant.mount()
        self._sync()

    def set_mode(self, mode: Mode | str) -> Mode:
        self._mode = Mode(mode)
        self._sync()
        return self._mode

    async def close(self) -> None:
        if self._counter is not None:
            self._counter.unmount()
            self._counter = None
        await self.assistant.unmount()

    def _sync(self) -> None:
        self.assistant.visible = self._mode is Mode.ASSISTANT
        if self._mode is Mode.COUNTER and self._counter is None:
            self._counter = self._counter_factory()
            self._counter.mount()
        elif self._mode is not Mode.COUNTER and self._counter is not None:
            self._counter.unmount()
            self._counter = None
