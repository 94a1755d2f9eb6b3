"""Inventory operations for one acting user: the glue between the store and the ledger engine."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Mapping, Optional

from .alerts import derive_alerts, derive_stats, filter_items
from .entities import InventoryItem, InventoryStats, LowStockAlert, StockTransaction, generate_sku, validate_item
from .errors import ItemNotFound, StaleItemVersion, ValidationError
from .ledger import LedgerEntry, TransactionRequest, apply_transaction
from .store import ITEM_FIELDS, InventorySnapshot, SqlInventoryStore
from .vocabulary import ItemCategory, TransactionType

logger = logging.getLogger(__name__)

ITEM_DEFAULTS: dict[str, Any] = {
    "name": "",
    "description": "",
    "category": ItemCategory.CHEMICAL,
    "sku": "",
    "unit": "kg",
    "current_stock": 0.0,
    "min_stock": 0.0,
    "max_stock": 0.0,
    "unit_price": 0.0,
    "supplier": "",
    "location": "",
    "batch_number": "",
    "expiry_date": None,
    "notes": None,
}


def _item_fields(item: InventoryItem) -> dict[str, Any]:
    return {name: getattr(item, name) for name in ITEM_FIELDS}


def _clean(fields: Mapping[str, Any]) -> dict[str, Any]:
    cleaned = {name: value for name, value in fields.items() if name in ITEM_FIELDS}
    for name in ("name", "sku", "unit"):
        if isinstance(cleaned.get(name), str):
            cleaned[name] = cleaned[name].strip()
    return cleaned


class InventoryService:
    """Validates every change against the latest snapshot before asking the store to persist it."""

    def __init__(self, store: SqlInventoryStore, user_id: int, *, sku_attempts: int = 5):
        self.store = store
        self.user_id = user_id
        self.sku_attempts = sku_attempts

    def snapshot(self) -> InventorySnapshot:
        return self.store.snapshot()

    def items(
        self,
        *,
        search: Optional[str] = None,
        category: Optional[ItemCategory | str] = None,
        low_stock_only: bool = False,
    ) -> list[InventoryItem]:
        return filter_items(self.store.list_items(), search=search, category=category, low_stock_only=low_stock_only)

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.store.get_item(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    def history(
        self, item_id: Optional[int] = None, *, kind: Optional[TransactionType | str] = None
    ) -> list[StockTransaction]:
        if kind is not None:
            try:
                kind = TransactionType(kind)
            except ValueError as exc:
                raise ValidationError({"type": f"Unknown transaction type {kind!r}"}) from exc
        return self.store.list_transactions(item_id, kind)

    def alerts(self) -> list[LowStockAlert]:
        return derive_alerts(self.store.list_items())

    def stats(self) -> InventoryStats:
        return derive_stats(self.store.list_items())

    def add_item(self, payload: Mapping[str, Any]) -> InventoryItem:
        fields = {**ITEM_DEFAULTS, **_clean(payload)}
        existing = {item.sku for item in self.store.list_items()}
        if not fields["sku"]:
            fields["sku"] = generate_sku(fields["category"], fields["name"], existing, attempts=self.sku_attempts)
        elif fields["sku"] in existing:
            raise ValidationError({"sku": f"SKU {fields['sku']!r} already exists"})
        validate_item(fields)
        return self.store.create_item(fields)

    def edit_item(
        self, item_id: int, changes: Mapping[str, Any], *, expected_version: Optional[int] = None
    ) -> InventoryItem:
        item = self.get_item(item_id)
        changes = _clean(changes)
        new_stock = changes.pop("current_stock", None)
        if new_stock is not None and new_stock != item.current_stock:
            raise ValidationError({"current_stock": "Stock levels change only through stock transactions"})

        merged = {**_item_fields(item), **changes}
        validate_item(merged)
        if merged["sku"] != item.sku and any(
            other.sku == merged["sku"] for other in self.store.list_items() if other.id != item.id
        ):
            raise ValidationError({"sku": f"SKU {merged['sku']!r} already exists"})
        return self.store.update_item(
            item_id, changes, expected_version=item.version if expected_version is None else expected_version
        )

    def remove_item(self, item_id: int) -> None:
        self.store.delete_item(item_id)

    def record_transaction(
        self, request: TransactionRequest, *, expected_version: Optional[int] = None
    ) -> LedgerEntry:
        """Run *request* through the ledger and persist the result.

        The entry returned carries the stored transaction, including its id.
        """

        item = self.store.get_item(request.item_id)
        if item is None:
            logger.warning("User %s submitted a transaction for missing item %s", self.user_id, request.item_id)
            raise ItemNotFound(request.item_id)
        if expected_version is not None and expected_version != item.version:
            raise StaleItemVersion(item.id, expected_version)

        entry = apply_transaction(item, request, self.user_id)
        saved = self.store.commit_entry(entry)
        return dataclasses.replace(entry, transaction=saved)


__all__ = ["ITEM_DEFAULTS", "InventoryService"]
