"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import crud, models
from .config import get_settings
from .database import SessionLocal
from .service import InventoryService
from .store import SnapshotHub, SqlInventoryStore

_bearer = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Provide a database session for FastAPI routes."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_hub(request: Request) -> SnapshotHub:
    return request.app.state.snapshot_hub


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
) -> models.User:
    """Require an active user identified by a bearer API token."""

    user = None
    if credentials is not None:
        user = crud.get_user_by_token(db, credentials.credentials, get_settings().secret_key)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_service(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hub: SnapshotHub = Depends(get_hub),
) -> InventoryService:
    store = SqlInventoryStore(db, owner_id=user.id, hub=hub)
    return InventoryService(store, user_id=user.id, sku_attempts=get_settings().sku_attempts)
