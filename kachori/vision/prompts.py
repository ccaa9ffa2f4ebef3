"""Prompt text and response parsing shared by the vision backends."""

from __future__ import annotations

import json
import re

from ..errors import AnalysisFailed
from . import AnalysisResult

_PROMPT = """\
This photo was taken at a snack shop counter.
Count every individual {item} that is clearly visible. Count partially
hidden pieces if you can tell they are there. Do not count crumbs.

Return only this JSON object, with no other text:
{{"count": <integer>}}
"""

_NUMBER = re.compile(r"-?\d+")


def build_prompt(item_name: str) -> str:
    return _PROMPT.format(item=item_name)


def parse_count_response(text: str) -> AnalysisResult:
    """Parse the model's reply into an AnalysisResult.

    Accepts a JSON object with a ``count`` field (optionally inside markdown
    fences) or, failing that, the first integer in the text.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)

    count: int | None = None
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _NUMBER.search(cleaned)
        if match:
            count = int(match.group())
    else:
        if isinstance(data, dict) and "count" in data:
            try:
                count = int(data["count"])
            except (TypeError, ValueError):
                count = None
        elif isinstance(data, int) and not isinstance(data, bool):
            count = data

    if count is None:
        raise AnalysisFailed(f"Could not read a count from the model response: {text!r}")
    return AnalysisResult(count=max(0, count), raw_text=text)
