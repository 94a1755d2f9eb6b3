"""Static stock vocabularies: categories, units, transaction types and reasons."""

from __future__ import annotations

from enum import Enum


class ItemCategory(str, Enum):
    DYE = "dye"
    CHEMICAL = "chemical"
    AUXILIARY = "auxiliary"
    FABRIC = "fabric"
    EQUIPMENT = "equipment"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS: dict[ItemCategory, str] = {
    ItemCategory.DYE: "Dyes",
    ItemCategory.CHEMICAL: "Chemicals",
    ItemCategory.AUXILIARY: "Auxiliaries",
    ItemCategory.FABRIC: "Fabrics",
    ItemCategory.EQUIPMENT: "Equipment",
}

STOCK_UNITS: tuple[str, ...] = ("kg", "g", "mg", "L", "mL", "pcs", "m", "cm", "rolls", "bags", "bottles")


class TransactionType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


# Suggestions only; the ledger accepts any non-empty reason.
REASONS: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.IN: ("Purchase", "Return", "Transfer In", "Production", "Other"),
    TransactionType.OUT: ("Sale", "Usage", "Transfer Out", "Waste", "Expired", "Other"),
    TransactionType.ADJUSTMENT: ("Physical Count", "Correction", "Damage", "Loss", "Other"),
}


__all__ = [
    "CATEGORY_LABELS",
    "ItemCategory",
    "REASONS",
    "STOCK_UNITS",
    "TransactionType",
]
