import os
import tempfile
from collections.abc import Generator
from typing import Any

_DATA_DIR = tempfile.mkdtemp(prefix="textile-stock-tests-")
os.environ.setdefault("TEXTILE_STOCK_DB", os.path.join(_DATA_DIR, "ledger.sqlite3"))
os.environ.setdefault("TEXTILE_STOCK_SECRET", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from textile_stock import crud, schemas  # noqa: E402
from textile_stock.app import create_app  # noqa: E402
from textile_stock.config import get_settings  # noqa: E402
from textile_stock.database import Base, create_sqlite_engine, init_database  # noqa: E402
from textile_stock.dependencies import get_db  # noqa: E402
from textile_stock.entities import InventoryItem  # noqa: E402
from textile_stock.service import InventoryService  # noqa: E402
from textile_stock.store import SnapshotHub, SqlInventoryStore  # noqa: E402
from textile_stock.vocabulary import ItemCategory  # noqa: E402


def make_item(**overrides: Any) -> InventoryItem:
    fields: dict[str, Any] = {
        "id": 1,
        "name": "Reactive Red 195",
        "sku": "DYE-REAC-0001",
        "category": ItemCategory.DYE,
        "unit": "kg",
        "current_stock": 20.0,
        "min_stock": 10.0,
        "max_stock": 100.0,
        "unit_price": 12.5,
        "supplier": "Huntsman",
    }
    fields.update(overrides)
    return InventoryItem(**fields)


@pytest.fixture(name="db_engine")
def db_engine_fixture(tmp_path) -> Generator[Any, None, None]:
    engine = create_sqlite_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_database(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="db_session")
def db_session_fixture(db_engine) -> Generator[Session, None, None]:
    with Session(db_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture(name="owner")
def owner_fixture(db_session: Session):
    user, _ = crud.create_user(db_session, schemas.UserCreate(username="dyehouse"), get_settings().secret_key)
    return user


@pytest.fixture(name="hub")
def hub_fixture() -> SnapshotHub:
    return SnapshotHub()


@pytest.fixture(name="store")
def store_fixture(db_session: Session, owner, hub: SnapshotHub) -> SqlInventoryStore:
    return SqlInventoryStore(db_session, owner_id=owner.id, hub=hub)


@pytest.fixture(name="service")
def service_fixture(store: SqlInventoryStore, owner) -> InventoryService:
    return InventoryService(store, user_id=owner.id)


@pytest.fixture(name="client")
def client_fixture(db_engine):  # type: ignore[annotations]
    app = create_app()

    def get_db_override() -> Generator[Session, None, None]:
        with Session(db_engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_db] = get_db_override

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(db_engine) -> dict[str, str]:
    with Session(db_engine) as session:
        _, token = crud.create_user(session, schemas.UserCreate(username="finishing"), get_settings().secret_key)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="item_factory")
def item_factory_fixture():
    return make_item
