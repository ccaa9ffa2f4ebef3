"""Gemini API vision backend for item counting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import AnalysisResult, VisionBackend
from .prompts import build_prompt, parse_count_response

if TYPE_CHECKING:
    from ..camera import CapturedFrame


class GeminiVisionBackend(VisionBackend):
    """Count items using Google Gemini's vision capability."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.0-flash",
        item_name: str = "kachori",
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._item_name = item_name

    async def count_items(self, frame: CapturedFrame) -> AnalysisResult:
        if not self._api_key:
            raise ValueError(
                "Gemini API key is not set. "
                "Unlock KachoriOS or set the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        parts = [
            {"mime_type": frame.mime_type, "data": frame.data},
            build_prompt(self._item_name),
        ]
        response = await model.generate_content_async(parts)
        return parse_count_response(response.text)
