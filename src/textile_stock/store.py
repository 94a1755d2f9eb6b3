"""SQL-backed item and transaction store with full-snapshot subscriptions.

Every successful write publishes the complete, freshly read item and
transaction sets of the owner to the listeners registered on a
:class:`SnapshotHub`. Listeners never receive deltas.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .entities import InventoryItem, StockTransaction, ensure_aware, utcnow
from .errors import InventoryError, ItemNotFound, PersistenceFailure, StaleItemVersion, ValidationError
from .ledger import LedgerEntry
from .vocabulary import ItemCategory, TransactionType

logger = logging.getLogger(__name__)

ITEM_FIELDS = (
    "name",
    "description",
    "category",
    "sku",
    "unit",
    "current_stock",
    "min_stock",
    "max_stock",
    "unit_price",
    "supplier",
    "location",
    "batch_number",
    "expiry_date",
    "notes",
)


@dataclass(frozen=True, slots=True)
class InventorySnapshot:
    """Items ordered by name and transactions newest first, as of one read."""

    items: tuple[InventoryItem, ...]
    transactions: tuple[StockTransaction, ...]

    def find_item(self, item_id: int) -> Optional[InventoryItem]:
        return next((item for item in self.items if item.id == item_id), None)


SnapshotListener = Callable[[InventorySnapshot], None]


class SnapshotHub:
    """In-process registry of snapshot listeners, partitioned by owner."""

    def __init__(self) -> None:
        self._listeners: dict[int, list[SnapshotListener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, owner_id: int, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it again."""

        with self._lock:
            self._listeners.setdefault(owner_id, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(owner_id, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def has_listeners(self, owner_id: int) -> bool:
        with self._lock:
            return bool(self._listeners.get(owner_id))

    def publish(self, owner_id: int, snapshot: InventorySnapshot) -> None:
        with self._lock:
            listeners = list(self._listeners.get(owner_id, []))
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:  # the write is already committed; keep notifying the others
                logger.exception("Snapshot listener %r failed for owner %s", listener, owner_id)


def _to_item(row: models.ItemRecord) -> InventoryItem:
    return InventoryItem(
        id=row.id,
        name=row.name,
        sku=row.sku,
        category=ItemCategory(row.category),
        unit=row.unit,
        description=row.description,
        current_stock=row.current_stock,
        min_stock=row.min_stock,
        max_stock=row.max_stock,
        unit_price=row.unit_price,
        supplier=row.supplier,
        location=row.location,
        batch_number=row.batch_number,
        expiry_date=row.expiry_date,
        notes=row.notes,
        last_updated=ensure_aware(row.last_updated),
        version=row.version,
    )


def _to_transaction(row: models.TransactionRecord) -> StockTransaction:
    return StockTransaction(
        id=row.id,
        item_id=row.item_id,
        type=TransactionType(row.type),
        quantity=row.quantity,
        reason=row.reason,
        timestamp=ensure_aware(row.timestamp),
        user_id=row.user_id,
        reference=row.reference,
        notes=row.notes,
    )


def _column_values(fields: Mapping[str, Any]) -> dict[str, Any]:
    values = {name: fields[name] for name in ITEM_FIELDS if name in fields}
    if isinstance(values.get("category"), ItemCategory):
        values["category"] = values["category"].value
    return values


class SqlInventoryStore:
    """Reads and writes one owner's items and transactions through a SQLAlchemy session."""

    def __init__(self, session: Session, owner_id: int, hub: Optional[SnapshotHub] = None):
        self._session = session
        self.owner_id = owner_id
        self.hub = hub

    # reads

    def list_items(self) -> list[InventoryItem]:
        statement = (
            select(models.ItemRecord)
            .where(models.ItemRecord.owner_id == self.owner_id)
            .order_by(models.ItemRecord.name.asc(), models.ItemRecord.id.asc())
            .execution_options(populate_existing=True)
        )
        return [_to_item(row) for row in self._session.scalars(statement)]

    def list_transactions(
        self, item_id: Optional[int] = None, kind: Optional[TransactionType] = None
    ) -> list[StockTransaction]:
        statement = select(models.TransactionRecord).where(models.TransactionRecord.owner_id == self.owner_id)
        if item_id is not None:
            statement = statement.where(models.TransactionRecord.item_id == item_id)
        if kind is not None:
            statement = statement.where(models.TransactionRecord.type == TransactionType(kind).value)
        statement = statement.order_by(models.TransactionRecord.timestamp.desc(), models.TransactionRecord.id.desc())
        return [_to_transaction(row) for row in self._session.scalars(statement)]

    def get_item(self, item_id: int) -> Optional[InventoryItem]:
        row = self._load_row(item_id)
        return _to_item(row) if row else None

    def snapshot(self) -> InventorySnapshot:
        return InventorySnapshot(items=tuple(self.list_items()), transactions=tuple(self.list_transactions()))

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener* and deliver the current snapshot to it immediately."""

        if self.hub is None:
            raise RuntimeError("Store was created without a snapshot hub")
        unsubscribe = self.hub.subscribe(self.owner_id, listener)
        listener(self.snapshot())
        return unsubscribe

    # writes

    def create_item(self, fields: Mapping[str, Any]) -> InventoryItem:
        row = models.ItemRecord(owner_id=self.owner_id, last_updated=utcnow(), version=1, **_column_values(fields))
        with self._write("create item"):
            self._session.add(row)
            try:
                self._session.flush()
            except IntegrityError as exc:
                raise ValidationError({"sku": f"SKU {fields.get('sku')!r} already exists"}) from exc
            item_id = row.id
        logger.info("Created item %s (%s) for owner %s", item_id, row.sku, self.owner_id)
        return self._require_item(item_id)

    def update_item(
        self, item_id: int, fields: Mapping[str, Any], *, expected_version: Optional[int] = None
    ) -> InventoryItem:
        """Apply field edits; ``current_stock`` is never written here."""

        values = _column_values(fields)
        values.pop("current_stock", None)
        with self._write("update item"):
            self._swap(item_id, expected_version, values)
        logger.info("Updated item %s for owner %s: %s", item_id, self.owner_id, sorted(values))
        return self._require_item(item_id)

    def delete_item(self, item_id: int) -> None:
        """Remove the item; its transactions stay in the ledger."""

        statement = delete(models.ItemRecord).where(
            models.ItemRecord.id == item_id, models.ItemRecord.owner_id == self.owner_id
        )
        with self._write("delete item"):
            if self._session.execute(statement).rowcount == 0:
                raise ItemNotFound(item_id)
        logger.info("Deleted item %s for owner %s", item_id, self.owner_id)

    def commit_entry(self, entry: LedgerEntry) -> StockTransaction:
        """Write the stock level and the transaction of *entry* in one database transaction."""

        txn = entry.transaction
        record = models.TransactionRecord(
            owner_id=self.owner_id,
            item_id=entry.item_id,
            type=txn.type.value,
            quantity=txn.quantity,
            reason=txn.reason,
            reference=txn.reference,
            notes=txn.notes,
            timestamp=txn.timestamp,
            user_id=txn.user_id,
        )
        with self._write("record stock transaction"):
            self._swap(entry.item_id, entry.item_version, {"current_stock": entry.new_stock})
            self._session.add(record)
            self._session.flush()
            saved = _to_transaction(record)
        logger.info(
            "Recorded %s of %g on item %s: stock %g -> %g",
            txn.type.value,
            txn.quantity,
            entry.item_id,
            entry.previous_stock,
            entry.new_stock,
        )
        return saved

    # internals

    def _load_row(self, item_id: int) -> Optional[models.ItemRecord]:
        statement = (
            select(models.ItemRecord)
            .where(models.ItemRecord.id == item_id, models.ItemRecord.owner_id == self.owner_id)
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(statement).first()

    def _require_item(self, item_id: int) -> InventoryItem:
        item = self.get_item(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    def _swap(self, item_id: int, expected_version: Optional[int], values: Mapping[str, Any]) -> None:
        """Update the item row if it still has *expected_version*, bumping the version."""

        conditions = [models.ItemRecord.id == item_id, models.ItemRecord.owner_id == self.owner_id]
        if expected_version is not None:
            conditions.append(models.ItemRecord.version == expected_version)
        statement = (
            update(models.ItemRecord)
            .where(*conditions)
            .values(**values, last_updated=utcnow(), version=models.ItemRecord.version + 1)
            .execution_options(synchronize_session=False)
        )
        if self._session.execute(statement).rowcount:
            return
        if self._load_row(item_id) is None:
            raise ItemNotFound(item_id)
        logger.warning("Rejected stale write to item %s (expected version %s)", item_id, expected_version)
        raise StaleItemVersion(item_id, expected_version)

    @contextmanager
    def _write(self, action: str) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except InventoryError:
            self._session.rollback()
            raise
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("Failed to %s for owner %s: %s", action, self.owner_id, exc)
            raise PersistenceFailure(f"Could not {action}") from exc
        if self.hub is not None and self.hub.has_listeners(self.owner_id):
            self.hub.publish(self.owner_id, self.snapshot())


__all__ = [
    "ITEM_FIELDS",
    "InventorySnapshot",
    "SnapshotHub",
    "SnapshotListener",
    "SqlInventoryStore",
]
