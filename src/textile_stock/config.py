"""Application configuration helpers."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


def _default_data_root() -> Path:
    """Return the platform specific directory used for persistent data."""

    if os.name == "nt":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home()))
        return base / "TextileStock"
    return Path.home() / ".textile_stock"


def _default_database_path() -> Path:
    """Resolve the database path taking overrides into account."""

    override = os.environ.get("TEXTILE_STOCK_DB")
    if override:
        return Path(override).expanduser()
    return _default_data_root() / "ledger.sqlite3"


def _load_or_create_secret(path: Path) -> str:
    """Return the token key stored at *path*, writing a fresh one on first use.

    Every process that opens the same database reads the same key.
    """

    if path.exists():
        stored = path.read_text(encoding="utf-8").strip()
        if stored:
            return stored
    path.parent.mkdir(parents=True, exist_ok=True)
    key = secrets.token_hex(32)
    path.write_text(key, encoding="utf-8")
    path.chmod(0o600)
    return key


@dataclass(slots=True)
class Settings:
    """Runtime configuration loaded from environment variables."""

    app_name: str = field(default_factory=lambda: os.environ.get("TEXTILE_STOCK_APP_NAME", "Textile Stock Ledger"))
    host: str = field(default_factory=lambda: os.environ.get("TEXTILE_STOCK_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.environ.get("TEXTILE_STOCK_PORT", "8000")))
    reload: bool = field(default_factory=lambda: os.environ.get("TEXTILE_STOCK_RELOAD", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.environ.get("TEXTILE_STOCK_LOG_LEVEL", "info"))
    database_path: Path = field(default_factory=_default_database_path)
    secret_key: str = field(default_factory=lambda: os.environ.get("TEXTILE_STOCK_SECRET", ""))
    sku_attempts: int = field(default_factory=lambda: int(os.environ.get("TEXTILE_STOCK_SKU_ATTEMPTS", "5")))

    def __post_init__(self) -> None:
        if not self.secret_key:
            self.secret_key = _load_or_create_secret(self.secret_key_path)

    @property
    def secret_key_path(self) -> Path:
        """File holding the generated token key when ``TEXTILE_STOCK_SECRET`` is unset."""

        return self.database_path.parent / "secret.key"

    def ensure_storage(self) -> None:
        """Ensure that the database directory exists."""

        self.database_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    settings = Settings()
    settings.ensure_storage()
    return settings
