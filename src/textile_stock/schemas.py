"""Pydantic schemas for API payloads.

Bodies use the camelCase keys of the stored records (``currentStock``,
``unitPrice``...); snake_case names are accepted on input as well.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .entities import AlertSeverity, StockStatus
from .vocabulary import ItemCategory, TransactionType


class RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True, allow_inf_nan=False
    )


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    full_name: Optional[str] = Field(None, max_length=128)
    is_active: bool = True


class UserRead(RecordModel):
    id: int
    username: str
    full_name: Optional[str] = None
    is_active: bool
    created_at: datetime


class ItemBase(RecordModel):
    name: str = ""
    description: str = ""
    category: ItemCategory = ItemCategory.CHEMICAL
    unit: str = "kg"
    min_stock: float = 0.0
    max_stock: float = 0.0
    unit_price: float = 0.0
    supplier: str = ""
    location: str = ""
    batch_number: str = ""
    expiry_date: Optional[date] = None
    notes: Optional[str] = None


class ItemCreate(ItemBase):
    sku: str = Field("", description="Generated from category and name when blank")
    current_stock: float = 0.0


class ItemUpdate(RecordModel):
    """Field edits. Stock levels change only through transactions."""

    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ItemCategory] = None
    sku: Optional[str] = None
    unit: Optional[str] = None
    current_stock: Optional[float] = None
    min_stock: Optional[float] = None
    max_stock: Optional[float] = None
    unit_price: Optional[float] = None
    supplier: Optional[str] = None
    location: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class ItemRead(ItemBase):
    id: int
    sku: str
    current_stock: float
    status: StockStatus
    last_updated: datetime
    version: int


class TransactionCreate(RecordModel):
    type: TransactionType
    quantity: float
    reason: str = ""
    reference: Optional[str] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = Field(
        None, description="Item version the client computed against; stale versions are rejected"
    )


class TransactionRead(RecordModel):
    id: int
    item_id: int
    type: TransactionType
    quantity: float
    reason: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime
    user_id: int


class LedgerResult(RecordModel):
    new_stock: float
    transaction: TransactionRead


class AlertRead(RecordModel):
    item_id: int
    item_name: str
    current_stock: float
    min_stock: float
    severity: AlertSeverity


class StatsRead(RecordModel):
    total_items: int
    total_value: float
    low_stock_count: int
    out_of_stock_count: int


class CategoryOption(BaseModel):
    value: ItemCategory
    label: str


class Vocabulary(BaseModel):
    categories: list[CategoryOption]
    units: list[str]
    reasons: dict[TransactionType, list[str]]
