"""Errors raised by the stock ledger and its store."""

from __future__ import annotations

from typing import Mapping


class InventoryError(RuntimeError):
    """Base class for every ledger failure surfaced to callers."""


class ValidationError(InventoryError):
    """Raised when a request or item fails validation.

    ``errors`` maps each offending field to a human readable message so the
    caller can render it next to the field.
    """

    def __init__(self, errors: Mapping[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {message}" for field, message in self.errors.items()))


class InsufficientStock(ValidationError):
    """Raised when a stock-out asks for more than is on hand."""

    def __init__(self, current_stock: float, unit: str):
        self.current_stock = current_stock
        self.unit = unit
        super().__init__(
            {"quantity": f"Cannot remove more than current stock ({format_quantity(current_stock)} {unit})"}
        )


class ItemNotFound(InventoryError):
    """Raised when an item id is not present in the latest snapshot."""

    def __init__(self, item_id: int | str):
        self.item_id = item_id
        super().__init__(f"Inventory item {item_id} not found")


class StaleItemVersion(InventoryError):
    """Raised when an item changed between reading it and writing its stock."""

    def __init__(self, item_id: int | str, expected_version: int):
        self.item_id = item_id
        self.expected_version = expected_version
        super().__init__(
            f"Inventory item {item_id} was modified concurrently (expected version {expected_version}); "
            "reload and retry"
        )


class PersistenceFailure(InventoryError):
    """Raised when the backing store fails to apply a write."""


def format_quantity(value: float) -> str:
    """Render a stock quantity exactly, without a trailing ``.0`` for whole numbers."""

    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


__all__ = [
    "InsufficientStock",
    "InventoryError",
    "ItemNotFound",
    "PersistenceFailure",
    "StaleItemVersion",
    "ValidationError",
    "format_quantity",
]
