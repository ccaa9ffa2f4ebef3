"""Application container that owns all KachoriOS state."""

from __future__ import annotations

import logging
from typing import Callable

from .camera import WebcamCapture
from .config import KachoriConfig
from .credentials import CredentialGate
from .db.count_log import LogStore
from .db.kv import KeyValueStore
from .errors import CredentialRequired
from .live.aggregator import LiveSessionAggregator
from .live.assistant import GeminiShopAssistant, LiveSession
from .live.events import EventChannel
from .modes import AssistantSurface, CounterSurface, Mode, SessionModeManager
from .pipeline import CapturePipeline, VerificationStage
from .vision import VisionBackend, create_backend

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, EventChannel, LiveSessionAggregator], LiveSession]


class KachoriApp:
    """Wires the components together behind the credential gate.

    Until a credential is active every component accessor raises
    CredentialRequired.
    """

    def __init__(
        self,
        config: KachoriConfig,
        storage: KeyValueStore | None = None,
        backend: VisionBackend | None = None,
        session_factory: SessionFactory | None = None,
        camera_factory: Callable[[], WebcamCapture | None] | None = None,
    ) -> None:
        self.config = config
        self.storage = storage or KeyValueStore(config.storage.path)
        prefix = config.storage.key_prefix
        self.gate = CredentialGate(
            self.storage,
            key=f"{prefix}_api_key",
            fallback=config.vision.gemini.api_key,
        )
        self.channel = EventChannel()
        self._logs_key = f"{prefix}_logs"
        self._backend = backend
        self._session_factory = session_factory or self._gemini_session
        self._camera_factory = camera_factory or self._webcam

        self._log_store: LogStore | None = None
        self._pipeline: CapturePipeline | None = None
        self._aggregator: LiveSessionAggregator | None = None
        self._modes: SessionModeManager | None = None

    @property
    def locked(self) -> bool:
        return self._modes is None

    def load(self) -> bool:
        """Activate from a stored credential. Returns True if unlocked."""
        if self.gate.load() is not None:
            self._activate()
        return not self.locked

    def unlock(self, candidate: str) -> None:
        """Submit a credential and build the components.

        Raises:
            CredentialRejected: If the gate refuses the candidate.
        """
        self.gate.submit(candidate)
        self._activate()

    async def start(self) -> None:
        """Mount the always-on assistant surface."""
        await self.modes.start()

    async def close(self) -> None:
        if self._modes is not None:
            await self._modes.close()
        self.storage.close()

    @property
    def log_store(self) -> LogStore:
        self._require()
        return self._log_store

    @property
    def pipeline(self) -> CapturePipeline:
        self._require()
        return self._pipeline

    @property
    def verification(self) -> VerificationStage:
        return self.pipeline.verification

    @property
    def aggregator(self) -> LiveSessionAggregator:
        self._require()
        return self._aggregator

    @property
    def modes(self) -> SessionModeManager:
        self._require()
        return self._modes

    def set_mode(self, mode: Mode | str) -> Mode:
        return self.modes.set_mode(mode)

    def _require(self) -> None:
        if self._modes is None:
            raise CredentialRequired("Enter an API key to unlock KachoriOS")

    def _activate(self) -> None:
        if self._modes is not None:
            return
        credential = self.gate.credential

        self._log_store = LogStore(self.storage, key=self._logs_key)
        self._log_store.load()

        backend = self._backend or create_backend(self.config, api_key=credential)
        self._pipeline = CapturePipeline(backend, self._log_store)

        self._aggregator = LiveSessionAggregator(max_items=self.config.assistant.max_items)
        self._aggregator.attach(self.channel)

        session = self._session_factory(credential, self.channel, self._aggregator)
        pipeline = self._pipeline
        self._modes = SessionModeManager(
            AssistantSurface(session),
            lambda: CounterSurface(pipeline, self._camera_factory()),
            mode=self.config.app.default_mode,
        )
        logger.info("KachoriOS unlocked (%d log entries)", len(self._log_store))

    def _gemini_session(
        self,
        credential: str,
        channel: EventChannel,
        aggregator: LiveSessionAggregator,
    ) -> LiveSession:
        return GeminiShopAssistant(
            api_key=credential,
            channel=channel,
            context=aggregator,
            model=self.config.assistant.model,
            context_items=self.config.assistant.context_items,
        )

    def _webcam(self) -> WebcamCapture:
        return WebcamCapture(
            camera_index=self.config.camera.index,
            save_dir=self.config.camera.save_dir,
        )
