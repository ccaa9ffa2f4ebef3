"""In-process event channel between the live session and its subscribers."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

ORDER = "order"
INSIGHT = "insight"

Handler = Callable[[Any], None]


class EventChannel:
    """Synchronous topic-based publish/subscribe.

    Handlers run on the caller's event loop turn, in subscription order.
    A failing handler is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *topic*. Returns an unsubscribe callable."""
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[topic]:
                self._handlers[topic].remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: Any) -> int:
        """Deliver *payload* to every handler of *topic*.

        Returns:
            Number of handlers that received it.
        """
        delivered = 0
        for handler in list(self._handlers.get(topic, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler for %r failed", topic)
                continue
            delivered += 1
        return delivered
