"""Always-on shop assistant session backed by Gemini function calling."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from .events import INSIGHT, ORDER, EventChannel
from .models import (
    INSIGHT_CATEGORIES,
    SEVERITIES,
    ShopInsight,
    ShopOrder,
    insight_from_args,
    order_from_args,
)

logger = logging.getLogger(__name__)

_SYSTEM_INSTRUCTION = """\
You are the Digital Munim, the always-on assistant of a busy kachori shop.
You listen to the shopkeeper and customers and keep the shop's books.

- When a customer places an order, call log_order with every item and its
  quantity. Include the total amount if a price was mentioned.
- When you notice something worth remembering about stock, a customer, things
  to buy, or a security risk, call log_insight.
- Keep spoken replies short and friendly. Reply in the language you were
  addressed in.
"""

_TOOLS = [
    {
        "function_declarations": [
            {
                "name": "log_order",
                "description": "Record a customer order.",
                "parameters": {
                    "type": "OBJECT",
                    "properties": {
                        "items": {
                            "type": "ARRAY",
                            "items": {
                                "type": "OBJECT",
                                "properties": {
                                    "name": {"type": "STRING"},
                                    "quantity": {"type": "INTEGER"},
                                    "notes": {"type": "STRING"},
                                },
                                "required": ["name", "quantity"],
                            },
                        },
                        "status": {"type": "STRING", "enum": ["pending", "completed"]},
                        "total_amount": {"type": "NUMBER"},
                    },
                    "required": ["items"],
                },
            },
            {
                "name": "log_insight",
                "description": "Record an observation about the shop.",
                "parameters": {
                    "type": "OBJECT",
                    "properties": {
                        "category": {"type": "STRING", "enum": list(INSIGHT_CATEGORIES)},
                        "content": {"type": "STRING"},
                        "severity": {"type": "STRING", "enum": list(SEVERITIES)},
                    },
                    "required": ["category", "content"],
                },
            },
        ]
    }
]

_MAX_TOOL_ROUNDS = 5


class SessionContext(Protocol):
    """Read-only view of what the session has produced so far."""

    @property
    def recent_orders(self) -> tuple[ShopOrder, ...]: ...

    @property
    def recent_insights(self) -> tuple[ShopInsight, ...]: ...


class LiveSession(ABC):
    """A long-lived conversational session that emits orders and insights."""

    @abstractmethod
    async def start(self) -> None:
        """Open the session. Called once per process."""
        ...

    @abstractmethod
    async def send(self, text: str) -> str:
        """Send one user turn and return the assistant's reply."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...


class GeminiShopAssistant(LiveSession):
    """Chat session whose tool calls become ShopOrder and ShopInsight events."""

    def __init__(
        self,
        api_key: str,
        channel: EventChannel,
        context: SessionContext,
        model: str = "gemini-2.0-flash",
        context_items: int = 5,
    ) -> None:
        self._api_key = api_key
        self._channel = channel
        self._context = context
        self._model = model
        self._context_items = context_items
        self._chat = None
        self._genai = None

    @property
    def started(self) -> bool:
        return self._chat is not None

    async def start(self) -> None:
        if self._chat is not None:
            return
        if not self._api_key:
            raise ValueError("Gemini API key is not set.")

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(
            self._model,
            tools=_TOOLS,
            system_instruction=_SYSTEM_INSTRUCTION,
        )
        self._genai = genai
        self._chat = model.start_chat()
        logger.info("Assistant session started (%s)", self._model)

    async def send(self, text: str) -> str:
        if self._chat is None:
            raise RuntimeError("Assistant session has not been started")

        response = await self._chat.send_message_async(self._with_context(text))
        for _ in range(_MAX_TOOL_ROUNDS):
            calls = _function_calls(response)
            if not calls:
                break
            replies = [self._dispatch(name, args) for name, args in calls]
            response = await self._chat.send_message_async(
                self._genai.protos.Content(
                    parts=[
                        self._genai.protos.Part(
                            function_response=self._genai.protos.FunctionResponse(
                                name=name, response=reply
                            )
                        )
                        for (name, _), reply in zip(calls, replies)
                    ]
                )
            )
        return _response_text(response)

    async def stop(self) -> None:
        if self._chat is not None:
            self._chat = None
            logger.info("Assistant session stopped")

    def _with_context(self, text: str) -> str:
        orders = self._context.recent_orders[: self._context_items]
        insights = self._context.recent_insights[: self._context_items]
        if not orders and not insights:
            return text

        lines = ["[Shop context]"]
        for order in orders:
            items = ", ".join(f"{i.quantity}x {i.name}" for i in order.items)
            lines.append(f"Order {order.status}: {items}")
        for insight in insights:
            lines.append(f"Insight ({insight.category}): {insight.content}")
        lines.append("[/Shop context]")
        lines.append(text)
        return "\n".join(lines)

    def _dispatch(self, name: str, args: dict) -> dict:
        try:
            if name == "log_order":
                order = order_from_args(args)
                self._channel.publish(ORDER, order)
                return {"result": "logged", "id": order.id}
            if name == "log_insight":
                insight = insight_from_args(args)
                self._channel.publish(INSIGHT, insight)
                return {"result": "logged", "id": insight.id}
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Rejected %s call: %s", name, e)
            return {"result": "error", "detail": str(e)}
        logger.warning("Unknown tool call: %s", name)
        return {"result": "error", "detail": f"unknown function {name}"}


def _function_calls(response) -> list[tuple[str, dict]]:
    calls = []
    for part in response.parts:
        fc = getattr(part, "function_call", None)
        if fc and fc.name:
            calls.append((fc.name, _to_plain(fc.args or {})))
    return calls


def _response_text(response) -> str:
    return "".join(
        part.text for part in response.parts if getattr(part, "text", None)
    ).strip()


def _to_plain(value: Any) -> Any:
    """Convert proto map/repeated composites into dicts and lists."""
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [_to_plain(v) for v in value]
    return value
