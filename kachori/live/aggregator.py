"""Newest-first collections of orders and insights from the live session."""

from __future__ import annotations

import logging

from .events import INSIGHT, ORDER, EventChannel
from .models import ShopInsight, ShopOrder

logger = logging.getLogger(__name__)


class LiveSessionAggregator:
    """Collects orders and insights regardless of which mode is visible."""

    def __init__(self, max_items: int = 0) -> None:
        self._max_items = max_items
        self._orders: list[ShopOrder] = []
        self._insights: list[ShopInsight] = []

    def attach(self, channel: EventChannel) -> None:
        channel.subscribe(ORDER, self.on_order)
        channel.subscribe(INSIGHT, self.on_insight)

    @property
    def recent_orders(self) -> tuple[ShopOrder, ...]:
        return tuple(self._orders)

    @property
    def recent_insights(self) -> tuple[ShopInsight, ...]:
        return tuple(self._insights)

    def on_order(self, order: ShopOrder) -> None:
        self._orders.insert(0, order)
        self._trim(self._orders)
        logger.info("Order %s with %d item(s)", order.id, len(order.items))

    def on_insight(self, insight: ShopInsight) -> None:
        self._insights.insert(0, insight)
        self._trim(self._insights)
        logger.info("Insight [%s] %s", insight.category, insight.content)

    def _trim(self, items: list) -> None:
        if self._max_items > 0:
            del items[self._max_items:]
