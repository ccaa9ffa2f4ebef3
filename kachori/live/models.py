"""Data models for orders and insights reported by the live assistant."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, get_args

OrderStatus = Literal["pending", "completed"]
InsightCategory = Literal[
    "inventory", "customer", "general", "shopping_list", "security_risk"
]
Severity = Literal["low", "medium", "high"]

ORDER_STATUSES: tuple[str, ...] = get_args(OrderStatus)
INSIGHT_CATEGORIES: tuple[str, ...] = get_args(InsightCategory)
SEVERITIES: tuple[str, ...] = get_args(Severity)


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class OrderItem:
    name: str
    quantity: int
    notes: str | None = None


@dataclass(frozen=True)
class ShopOrder:
    """A customer order taken by the assistant."""

    items: tuple[OrderItem, ...]
    status: OrderStatus = "pending"
    total_amount: float | None = None
    id: str = field(default_factory=_new_id)
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "timestamp": self.timestamp,
            "items": [
                {"name": i.name, "quantity": i.quantity}
                | ({"notes": i.notes} if i.notes else {})
                for i in self.items
            ],
            "status": self.status,
        }
        if self.total_amount is not None:
            d["totalAmount"] = self.total_amount
        return d


@dataclass(frozen=True)
class ShopInsight:
    """An observation about stock, customers, or shop safety."""

    category: InsightCategory
    content: str
    severity: Severity | None = None
    id: str = field(default_factory=_new_id)
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "timestamp": self.timestamp,
            "category": self.category,
            "content": self.content,
        }
        if self.severity is not None:
            d["severity"] = self.severity
        return d


def order_from_args(args: dict) -> ShopOrder:
    """Build a ShopOrder from a ``log_order`` tool call.

    Raises:
        ValueError: If the arguments do not describe a valid order.
    """
    raw_items = args.get("items") or []
    items: list[OrderItem] = []
    for raw in raw_items:
        name = str(raw.get("name", "")).strip()
        if not name:
            raise ValueError(f"Order item without a name: {raw!r}")
        items.append(
            OrderItem(
                name=name,
                quantity=max(1, int(raw.get("quantity", 1))),
                notes=raw.get("notes") or None,
            )
        )
    if not items:
        raise ValueError("Order has no items")

    status = args.get("status", "pending")
    if status not in ORDER_STATUSES:
        status = "pending"

    total = args.get("total_amount", args.get("totalAmount"))
    return ShopOrder(
        items=tuple(items),
        status=status,
        total_amount=float(total) if total is not None else None,
    )


def insight_from_args(args: dict) -> ShopInsight:
    """Build a ShopInsight from a ``log_insight`` tool call.

    Unknown categories fall back to ``general``; unknown severities are dropped.
    """
    content = str(args.get("content", "")).strip()
    if not content:
        raise ValueError("Insight has no content")

    category = args.get("category", "general")
    if category not in INSIGHT_CATEGORIES:
        category = "general"
    severity = args.get("severity")
    if severity not in SEVERITIES:
        severity = None

    return ShopInsight(category=category, content=content, severity=severity)
