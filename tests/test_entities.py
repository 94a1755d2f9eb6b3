import random
import re

import pytest

from textile_stock.entities import (
    InventoryItem,
    StockStatus,
    StockTransaction,
    derive_status,
    generate_sku,
    validate_item,
)
from textile_stock.errors import ValidationError
from textile_stock.vocabulary import ItemCategory, TransactionType


@pytest.mark.parametrize(
    ("current", "minimum", "maximum", "expected"),
    [
        (0, 10, 100, StockStatus.OUT_OF_STOCK),
        (0, 0, 0, StockStatus.OUT_OF_STOCK),
        (5, 10, 100, StockStatus.LOW_STOCK),
        (10, 10, 100, StockStatus.LOW_STOCK),
        (100, 10, 100, StockStatus.OVERSTOCK),
        (2.5, 1, 2, StockStatus.OVERSTOCK),
        (50, 10, 100, StockStatus.IN_STOCK),
    ],
)
def test_derive_status_priority(item_factory, current, minimum, maximum, expected) -> None:
    item = item_factory(current_stock=current, min_stock=minimum, max_stock=maximum)
    assert derive_status(item) is expected
    assert item.status is expected


def test_generate_sku_shape() -> None:
    sku = generate_sku(ItemCategory.CHEMICAL, "Soda Ash Light")
    assert re.fullmatch(r"CHE-SODA-[A-Z0-9]{4}", sku)

    short = generate_sku("dye", "Rb")
    assert re.fullmatch(r"DYE-RB-[A-Z0-9]{4}", short)


def test_generate_sku_avoids_existing_codes() -> None:
    taken = {generate_sku("fabric", "Denim", rng=random.Random(7))}
    fresh = generate_sku("fabric", "Denim", taken, rng=random.Random(7))
    assert fresh not in taken
    assert fresh.startswith("FAB-DENI-")


def _valid_fields(**overrides):
    fields = {
        "name": "Acetic Acid",
        "sku": "CHE-ACET-AB12",
        "category": "chemical",
        "unit": "L",
        "current_stock": 0,
        "min_stock": 5,
        "max_stock": 50,
        "unit_price": 1.2,
    }
    fields.update(overrides)
    return fields


def test_validate_item_accepts_valid_fields() -> None:
    validate_item(_valid_fields())
    validate_item(_valid_fields(min_stock=5, max_stock=5))


def test_validate_item_collects_every_field_error() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_item(_valid_fields(name=" ", unit="", current_stock=-1, unit_price=-0.5, category="yarn"))

    errors = excinfo.value.errors
    assert set(errors) == {"name", "unit", "current_stock", "unit_price", "category"}
    assert errors["current_stock"] == "Current stock must be 0 or greater"


def test_validate_item_rejects_non_finite_numbers() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_item(
            _valid_fields(
                current_stock=float("nan"), min_stock=float("inf"), max_stock=float("nan"), unit_price=float("-inf")
            )
        )

    errors = excinfo.value.errors
    assert set(errors) == {"current_stock", "min_stock", "max_stock", "unit_price"}
    assert errors["min_stock"] == "Minimum stock must be a finite number"


def test_validate_item_rejects_max_below_min() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_item(_valid_fields(min_stock=20, max_stock=10))
    assert list(excinfo.value.errors) == ["max_stock"]


def test_item_record_uses_camel_case_keys(item_factory) -> None:
    item = item_factory(current_stock=2.5, notes="keep dry")
    record = item.to_record()

    assert record["currentStock"] == 2.5
    assert record["minStock"] == 10.0
    assert record["category"] == "dye"
    assert record["lastUpdated"].endswith("+00:00")
    assert InventoryItem.from_record(record) == item


def test_transaction_record_round_trip() -> None:
    record = {
        "id": 9,
        "itemId": 3,
        "type": "adjustment",
        "quantity": 12,
        "reason": "Physical Count",
        "reference": None,
        "notes": "quarterly count",
        "timestamp": "2024-05-02T08:15:00+00:00",
        "userId": 1,
    }

    txn = StockTransaction.from_record(record)

    assert txn.type is TransactionType.ADJUSTMENT
    assert txn.quantity == 12.0
    assert txn.to_record() == {**record, "quantity": 12.0}
