"""Stock ledger engine.

The engine is the only path by which an item's ``current_stock`` changes. It
validates a :class:`TransactionRequest` against the item as last observed,
computes the resulting stock level and describes the pair of writes the store
must apply together: the new stock on the item and the appended transaction.
Nothing here performs I/O or keeps state between calls.

Over-withdrawal is rejected during validation. The floor at zero in
:func:`compute_new_stock` only matters for entries built with
``enforce_availability=False``, for example when replaying history recorded
before stock was known to be short.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .entities import InventoryItem, StockTransaction, utcnow
from .errors import InsufficientStock, ValidationError
from .vocabulary import TransactionType


@dataclass(frozen=True, slots=True)
class TransactionRequest:
    item_id: int
    type: TransactionType | str
    quantity: float
    reason: str
    reference: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """The stock update and transaction record that must be persisted as one unit."""

    item_id: int
    previous_stock: float
    new_stock: float
    item_version: int
    transaction: StockTransaction


def _coerce_type(value: TransactionType | str) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError as exc:
        raise ValidationError({"type": f"Unknown transaction type {value!r}"}) from exc


def validate_request(
    item: InventoryItem, request: TransactionRequest, *, enforce_availability: bool = True
) -> TransactionType:
    """Reject malformed requests before any stock is computed; return the parsed type."""

    errors: dict[str, str] = {}
    kind: Optional[TransactionType] = None
    try:
        kind = _coerce_type(request.type)
    except ValidationError as exc:
        errors.update(exc.errors)

    quantity = request.quantity
    if quantity is None:
        errors["quantity"] = "Quantity is required"
    elif not math.isfinite(quantity):
        errors["quantity"] = "Quantity must be a finite number"
    elif kind is TransactionType.ADJUSTMENT:
        if quantity < 0:
            errors["quantity"] = "Adjusted stock must be 0 or greater"
    elif quantity <= 0:
        errors["quantity"] = "Quantity must be greater than 0"

    if not (request.reason or "").strip():
        errors["reason"] = "Reason is required"

    if errors:
        raise ValidationError(errors)

    if enforce_availability and kind is TransactionType.OUT and quantity > item.current_stock:
        raise InsufficientStock(item.current_stock, item.unit)
    return kind


def compute_new_stock(current_stock: float, kind: TransactionType, quantity: float) -> float:
    if kind is TransactionType.IN:
        new_stock = current_stock + quantity
    elif kind is TransactionType.OUT:
        new_stock = current_stock - quantity
    else:
        new_stock = quantity
    return max(0.0, new_stock)


def apply_transaction(
    item: InventoryItem,
    request: TransactionRequest,
    user_id: int,
    *,
    now: Optional[datetime] = None,
    enforce_availability: bool = True,
) -> LedgerEntry:
    """Validate *request* against *item* and return the entry to persist.

    Raises :class:`ValidationError` (or its :class:`InsufficientStock`
    subclass) without computing anything when the request is rejected.
    """

    if request.item_id != item.id:
        raise ValidationError({"item_id": f"Request targets item {request.item_id}, not {item.id}"})
    kind = validate_request(item, request, enforce_availability=enforce_availability)
    new_stock = compute_new_stock(item.current_stock, kind, request.quantity)

    transaction = StockTransaction(
        id=None,
        item_id=item.id,
        type=kind,
        quantity=float(request.quantity),
        reason=request.reason.strip(),
        timestamp=now or utcnow(),
        user_id=user_id,
        reference=request.reference or None,
        notes=request.notes or None,
    )
    return LedgerEntry(
        item_id=item.id,
        previous_stock=item.current_stock,
        new_stock=new_stock,
        item_version=item.version,
        transaction=transaction,
    )


__all__ = [
    "LedgerEntry",
    "TransactionRequest",
    "apply_transaction",
    "compute_new_stock",
    "validate_request",
]
