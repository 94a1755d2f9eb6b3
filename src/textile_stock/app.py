"""FastAPI application factory."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse

from . import __version__, schemas
from .config import get_settings
from .database import init_database
from .dependencies import get_service
from .entities import InventoryItem
from .errors import ItemNotFound, PersistenceFailure, StaleItemVersion, ValidationError
from .ledger import TransactionRequest
from .service import InventoryService
from .store import SnapshotHub
from .vocabulary import CATEGORY_LABELS, REASONS, STOCK_UNITS, ItemCategory, TransactionType


def _item_read(item: InventoryItem) -> schemas.ItemRead:
    # status is a property, not a dataclass field
    return schemas.ItemRead.model_validate(item)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    def handle_validation(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc), "errors": exc.errors},
        )

    @app.exception_handler(ItemNotFound)
    def handle_not_found(request: Request, exc: ItemNotFound) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(StaleItemVersion)
    def handle_stale(request: Request, exc: StaleItemVersion) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(PersistenceFailure)
    def handle_persistence(request: Request, exc: PersistenceFailure) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    init_database()

    app = FastAPI(title=settings.app_name, version=__version__)
    app.state.snapshot_hub = SnapshotHub()
    _register_error_handlers(app)

    @app.get("/health", tags=["system"])
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/vocabulary", response_model=schemas.Vocabulary, tags=["system"])
    def vocabulary() -> schemas.Vocabulary:
        return schemas.Vocabulary(
            categories=[schemas.CategoryOption(value=value, label=label) for value, label in CATEGORY_LABELS.items()],
            units=list(STOCK_UNITS),
            reasons={kind: list(reasons) for kind, reasons in REASONS.items()},
        )

    @app.get("/items", response_model=list[schemas.ItemRead], tags=["items"])
    def list_items(
        search: Optional[str] = None,
        category: Optional[ItemCategory] = None,
        low_stock: bool = False,
        service: InventoryService = Depends(get_service),
    ):
        items = service.items(search=search, category=category, low_stock_only=low_stock)
        return [_item_read(item) for item in items]

    @app.post("/items", response_model=schemas.ItemRead, status_code=status.HTTP_201_CREATED, tags=["items"])
    def create_item(payload: schemas.ItemCreate, service: InventoryService = Depends(get_service)):
        return _item_read(service.add_item(payload.model_dump()))

    @app.get("/items/{item_id}", response_model=schemas.ItemRead, tags=["items"])
    def get_item(item_id: int, service: InventoryService = Depends(get_service)):
        return _item_read(service.get_item(item_id))

    @app.put("/items/{item_id}", response_model=schemas.ItemRead, tags=["items"])
    def update_item(item_id: int, payload: schemas.ItemUpdate, service: InventoryService = Depends(get_service)):
        changes = payload.model_dump(exclude_unset=True)
        expected_version = changes.pop("expected_version", None)
        return _item_read(service.edit_item(item_id, changes, expected_version=expected_version))

    @app.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["items"])
    def delete_item(item_id: int, service: InventoryService = Depends(get_service)) -> None:
        service.remove_item(item_id)

    @app.post(
        "/items/{item_id}/transactions",
        response_model=schemas.LedgerResult,
        status_code=status.HTTP_201_CREATED,
        tags=["transactions"],
    )
    def record_transaction(
        item_id: int, payload: schemas.TransactionCreate, service: InventoryService = Depends(get_service)
    ):
        request = TransactionRequest(
            item_id=item_id,
            type=payload.type,
            quantity=payload.quantity,
            reason=payload.reason,
            reference=payload.reference,
            notes=payload.notes,
        )
        entry = service.record_transaction(request, expected_version=payload.expected_version)
        return schemas.LedgerResult(
            new_stock=entry.new_stock,
            transaction=schemas.TransactionRead.model_validate(entry.transaction),
        )

    @app.get("/transactions", response_model=list[schemas.TransactionRead], tags=["transactions"])
    def list_transactions(
        item_id: Optional[int] = None,
        kind: Optional[TransactionType] = Query(None, alias="type"),
        service: InventoryService = Depends(get_service),
    ):
        return service.history(item_id, kind=kind)

    @app.get("/alerts", response_model=list[schemas.AlertRead], tags=["alerts"])
    def list_alerts(service: InventoryService = Depends(get_service)):
        return service.alerts()

    @app.get("/stats", response_model=schemas.StatsRead, tags=["alerts"])
    def stats(service: InventoryService = Depends(get_service)):
        return service.stats()

    return app
