"""Plain records for inventory items, stock transactions and derived alerts.

These records are what the ledger engine and alert derivation consume. They
carry no database state; the store converts ORM rows into them and back.
"""

from __future__ import annotations

import math
import random
import re
import string
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .errors import ValidationError
from .vocabulary import ItemCategory, TransactionType

_SKU_ALPHABET = string.ascii_uppercase + string.digits
_WHITESPACE = re.compile(r"\s+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StockStatus(str, Enum):
    OUT_OF_STOCK = "Out of Stock"
    LOW_STOCK = "Low Stock"
    OVERSTOCK = "Overstock"
    IN_STOCK = "In Stock"


class AlertSeverity(str, Enum):
    LOW = "low"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class InventoryItem:
    """A stock-keeping unit as seen in the latest snapshot."""

    id: int
    name: str
    sku: str
    category: ItemCategory = ItemCategory.CHEMICAL
    unit: str = "kg"
    description: str = ""
    current_stock: float = 0.0
    min_stock: float = 0.0
    max_stock: float = 0.0
    unit_price: float = 0.0
    supplier: str = ""
    location: str = ""
    batch_number: str = ""
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    last_updated: datetime = field(default_factory=utcnow)
    version: int = 1

    @property
    def status(self) -> StockStatus:
        return derive_status(self)

    def to_record(self) -> dict[str, Any]:
        """Serialise to the flat camelCase record shape used for interchange."""

        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "sku": self.sku,
            "currentStock": self.current_stock,
            "minStock": self.min_stock,
            "maxStock": self.max_stock,
            "unit": self.unit,
            "unitPrice": self.unit_price,
            "supplier": self.supplier,
            "location": self.location,
            "batchNumber": self.batch_number,
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
            "notes": self.notes,
            "lastUpdated": ensure_aware(self.last_updated).isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "InventoryItem":
        expiry = record.get("expiryDate")
        last_updated = record.get("lastUpdated")
        return cls(
            id=record["id"],
            name=record["name"],
            sku=record["sku"],
            category=ItemCategory(record.get("category", ItemCategory.CHEMICAL.value)),
            unit=record.get("unit", "kg"),
            description=record.get("description", ""),
            current_stock=float(record.get("currentStock", 0)),
            min_stock=float(record.get("minStock", 0)),
            max_stock=float(record.get("maxStock", 0)),
            unit_price=float(record.get("unitPrice", 0)),
            supplier=record.get("supplier", ""),
            location=record.get("location", ""),
            batch_number=record.get("batchNumber", ""),
            expiry_date=date.fromisoformat(expiry) if expiry else None,
            notes=record.get("notes"),
            last_updated=ensure_aware(datetime.fromisoformat(last_updated)) if last_updated else utcnow(),
            version=int(record.get("version", 1)),
        )


@dataclass(frozen=True, slots=True)
class StockTransaction:
    """An immutable ledger event. ``quantity`` is a delta for in/out and an absolute level for adjustments."""

    id: Optional[int]
    item_id: int
    type: TransactionType
    quantity: float
    reason: str
    timestamp: datetime
    user_id: int
    reference: Optional[str] = None
    notes: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "type": self.type.value,
            "quantity": self.quantity,
            "reason": self.reason,
            "reference": self.reference,
            "notes": self.notes,
            "timestamp": ensure_aware(self.timestamp).isoformat(),
            "userId": self.user_id,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "StockTransaction":
        return cls(
            id=record.get("id"),
            item_id=record["itemId"],
            type=TransactionType(record["type"]),
            quantity=float(record["quantity"]),
            reason=record["reason"],
            timestamp=ensure_aware(datetime.fromisoformat(record["timestamp"])),
            user_id=record["userId"],
            reference=record.get("reference"),
            notes=record.get("notes"),
        )


@dataclass(frozen=True, slots=True)
class LowStockAlert:
    item_id: int
    item_name: str
    current_stock: float
    min_stock: float
    severity: AlertSeverity


@dataclass(frozen=True, slots=True)
class InventoryStats:
    total_items: int
    total_value: float
    low_stock_count: int
    out_of_stock_count: int


def derive_status(item: InventoryItem) -> StockStatus:
    """Classify *item* by its stock bounds, checking out-of-stock first."""

    if item.current_stock == 0:
        return StockStatus.OUT_OF_STOCK
    if item.current_stock <= item.min_stock:
        return StockStatus.LOW_STOCK
    if item.current_stock >= item.max_stock:
        return StockStatus.OVERSTOCK
    return StockStatus.IN_STOCK


def sku_prefix(category: str, name: str) -> str:
    category_code = str(getattr(category, "value", category))[:3].upper()
    name_code = _WHITESPACE.sub("", name)[:4].upper()
    return f"{category_code}-{name_code}"


def generate_sku(
    category: str,
    name: str,
    existing: Iterable[str] = (),
    *,
    attempts: int = 5,
    rng: Optional[random.Random] = None,
) -> str:
    """Return ``CAT-NAME-XXXX`` with a random base-36 suffix.

    Suffixes already present in *existing* are skipped for up to *attempts*
    draws; after that the last draw is returned regardless, so callers must
    still tolerate a rare duplicate.
    """

    rng = rng or random
    taken = set(existing)
    prefix = sku_prefix(category, name)
    candidate = ""
    for _ in range(max(attempts, 1)):
        suffix = "".join(rng.choice(_SKU_ALPHABET) for _ in range(4))
        candidate = f"{prefix}-{suffix}"
        if candidate not in taken:
            break
    return candidate


_REQUIRED_TEXT = ("name", "sku", "category", "unit")
_NON_NEGATIVE = {
    "current_stock": "Current stock",
    "min_stock": "Minimum stock",
    "max_stock": "Maximum stock",
    "unit_price": "Unit price",
}


def validate_item(fields: Mapping[str, Any]) -> None:
    """Check an item's editable fields, raising one error that names every bad field."""

    errors: dict[str, str] = {}
    for name in _REQUIRED_TEXT:
        value = fields.get(name)
        text = getattr(value, "value", value)
        if text is None or not str(text).strip():
            errors[name] = f"{name.replace('_', ' ').capitalize()} is required"

    category = fields.get("category")
    if "category" not in errors and not isinstance(category, ItemCategory):
        try:
            ItemCategory(category)
        except ValueError:
            errors["category"] = f"Unknown category {category!r}"

    for name, label in _NON_NEGATIVE.items():
        value = fields.get(name)
        if value is not None and not math.isfinite(value):
            errors[name] = f"{label} must be a finite number"
        elif value is None or value < 0:
            errors[name] = f"{label} must be 0 or greater"

    min_stock = fields.get("min_stock")
    max_stock = fields.get("max_stock")
    if "min_stock" not in errors and "max_stock" not in errors and max_stock < min_stock:
        errors["max_stock"] = "Maximum stock cannot be below minimum stock"

    if errors:
        raise ValidationError(errors)


__all__ = [
    "AlertSeverity",
    "InventoryItem",
    "InventoryStats",
    "LowStockAlert",
    "StockStatus",
    "StockTransaction",
    "derive_status",
    "ensure_aware",
    "generate_sku",
    "sku_prefix",
    "utcnow",
    "validate_item",
]
