"""Low-stock alerts, summary statistics and list filtering over an item snapshot."""

from __future__ import annotations

from typing import Iterable, Optional

from .entities import AlertSeverity, InventoryItem, InventoryStats, LowStockAlert
from .vocabulary import ItemCategory


def is_low_stock(item: InventoryItem) -> bool:
    return item.current_stock <= item.min_stock


def derive_alerts(items: Iterable[InventoryItem]) -> list[LowStockAlert]:
    return [
        LowStockAlert(
            item_id=item.id,
            item_name=item.name,
            current_stock=item.current_stock,
            min_stock=item.min_stock,
            severity=AlertSeverity.CRITICAL if item.current_stock == 0 else AlertSeverity.LOW,
        )
        for item in items
        if is_low_stock(item)
    ]


def derive_stats(items: Iterable[InventoryItem]) -> InventoryStats:
    items = list(items)
    return InventoryStats(
        total_items=len(items),
        total_value=sum(item.current_stock * item.unit_price for item in items),
        low_stock_count=sum(1 for item in items if is_low_stock(item)),
        out_of_stock_count=sum(1 for item in items if item.current_stock == 0),
    )


def filter_items(
    items: Iterable[InventoryItem],
    *,
    search: Optional[str] = None,
    category: Optional[ItemCategory | str] = None,
    low_stock_only: bool = False,
) -> list[InventoryItem]:
    """Return the items matching a name/SKU/supplier search, a category and the low-stock toggle."""

    needle = (search or "").strip().lower()
    wanted = ItemCategory(category) if category else None
    matches: list[InventoryItem] = []
    for item in items:
        if needle and not any(needle in value.lower() for value in (item.name, item.sku, item.supplier)):
            continue
        if wanted is not None and item.category is not wanted:
            continue
        if low_stock_only and not is_low_stock(item):
            continue
        matches.append(item)
    return matches


__all__ = ["derive_alerts", "derive_stats", "filter_items", "is_low_stock"]
