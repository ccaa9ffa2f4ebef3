"""Vision backend base class, analysis result types, and factory."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ..camera import CapturedFrame
    from ..config import KachoriConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    count: int  # >= 0
    raw_text: str


@dataclass(frozen=True)
class AnalysisFailure:
    message: str


AnalysisOutcome = Union[AnalysisResult, AnalysisFailure]


class VisionBackend(ABC):
    """Abstract base for counting items in a still image."""

    @abstractmethod
    async def count_items(self, frame: CapturedFrame) -> AnalysisResult:
        """Count the items visible in *frame*.

        Raises on any failure; use analyze() to get an explicit outcome.
        """
        ...


async def analyze(backend: VisionBackend, frame: CapturedFrame) -> AnalysisOutcome:
    """Run one analysis call and fold any error into an AnalysisFailure."""
    try:
        return await backend.count_items(frame)
    except Exception as e:
        logger.exception("Image analysis failed")
        return AnalysisFailure(message=str(e))


def create_backend(config: KachoriConfig, api_key: str | None = None) -> VisionBackend:
    """Create a vision backend based on configuration.

    *api_key* overrides the configured Gemini key; it is normally the
    credential accepted by the gate.
    """
    backend_name = config.vision.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiVisionBackend

            return GeminiVisionBackend(
                api_key=api_key or config.vision.gemini.api_key,
                model=config.vision.gemini.model,
                item_name=config.vision.item_name,
            )
        case "claude":
            from .claude import ClaudeVisionBackend

            return ClaudeVisionBackend(
                api_key=config.vision.claude.api_key,
                model=config.vision.claude.model,
                item_name=config.vision.item_name,
            )
        case _:
            raise ValueError(
                f"Unknown vision backend: {backend_name!r} "
                f"(choose gemini or claude)"
            )
