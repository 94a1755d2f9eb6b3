"""Database access helpers for user accounts."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas, security

logger = logging.getLogger(__name__)


class DuplicateUsernameError(RuntimeError):
    """Raised when trying to create a user with an existing username."""


def list_users(db: Session, *, skip: int = 0, limit: int = 50) -> list[models.User]:
    statement = select(models.User).order_by(models.User.id).offset(skip).limit(limit)
    return list(db.scalars(statement))


def get_user_by_username(db: Session, username: str) -> Optional[models.User]:
    statement = select(models.User).where(models.User.username == username)
    return db.scalars(statement).first()


def get_user_by_token(db: Session, token: str, secret_key: str) -> Optional[models.User]:
    """Return the active user owning *token*, if any."""

    digest = security.digest_token(token, secret_key)
    statement = select(models.User).where(models.User.token_digest == digest)
    user = db.scalars(statement).first()
    if not user or not user.is_active:
        return None
    if not security.verify_token(token, user.token_digest, secret_key):  # pragma: no cover - digest lookup matched
        return None
    return user


def create_user(db: Session, payload: schemas.UserCreate, secret_key: str) -> tuple[models.User, str]:
    """Create a user and return it with its freshly issued API token."""

    token = security.generate_api_token()
    user = models.User(
        username=payload.username,
        full_name=payload.full_name,
        token_digest=security.digest_token(token, secret_key),
        is_active=payload.is_active,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateUsernameError(f"Username '{payload.username}' already exists") from exc
    db.refresh(user)
    logger.info("Created user %s (id=%s)", user.username, user.id)
    return user, token


def rotate_token(db: Session, user: models.User, secret_key: str) -> str:
    token = security.generate_api_token()
    user.token_digest = security.digest_token(token, secret_key)
    db.add(user)
    db.commit()
    logger.info("Rotated API token for %s", user.username)
    return token
