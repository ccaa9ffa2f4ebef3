"""Always-on assistant session and the orders/insights it produces."""

from .aggregator import LiveSessionAggregator
from .assistant import GeminiShopAssistant, LiveSession
from .events import INSIGHT, ORDER, EventChannel
from .models import OrderItem, ShopInsight, ShopOrder

__all__ = [
    "EventChannel",
    "GeminiShopAssistant",
    "INSIGHT",
    "LiveSession",
    "LiveSessionAggregator",
    "ORDER",
    "OrderItem",
    "ShopInsight",
    "ShopOrder",
]
