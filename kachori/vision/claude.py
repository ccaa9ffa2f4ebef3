"""Claude API vision backend for item counting."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

from . import AnalysisResult, VisionBackend
from .prompts import build_prompt, parse_count_response

if TYPE_CHECKING:
    from ..camera import CapturedFrame


class ClaudeVisionBackend(VisionBackend):
    """Count items using Claude's vision capability."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
        item_name: str = "kachori",
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._item_name = item_name

    async def count_items(self, frame: CapturedFrame) -> AnalysisResult:
        if not self._api_key:
            raise ValueError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": frame.mime_type,
                    "data": base64.standard_b64encode(frame.data).decode(),
                },
            },
            {"type": "text", "text": build_prompt(self._item_name)},
        ]

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=256,
            messages=[{"role": "user", "content": content}],
        )

        return parse_count_response(response.content[0].text)
