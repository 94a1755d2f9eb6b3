"""Command line interface for the stock ledger service."""

from __future__ import annotations

import logging
from typing import Optional

import typer
import uvicorn
from sqlalchemy.orm import Session

from . import schemas
from .alerts import derive_alerts
from .config import Settings, get_settings
from .crud import DuplicateUsernameError, create_user, get_user_by_username, list_users, rotate_token
from .database import init_database, session_scope
from .entities import AlertSeverity, derive_status
from .errors import InventoryError, ValidationError, format_quantity
from .ledger import TransactionRequest
from .service import InventoryService
from .store import SqlInventoryStore
from .vocabulary import ItemCategory, TransactionType

app = typer.Typer(help="Manage and run the textile stock ledger service.")

_USER_HELP = "Username whose inventory is used"


def _print_header(title: str) -> None:
    typer.secho(title, bold=True, fg=typer.colors.CYAN)


def _resolve_settings() -> Settings:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_database()
    return settings


def _service_for(session: Session, username: str) -> InventoryService:
    user = get_user_by_username(session, username)
    if not user or not user.is_active:
        typer.secho(f"No active user named {username}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    store = SqlInventoryStore(session, owner_id=user.id)
    return InventoryService(store, user_id=user.id, sku_attempts=get_settings().sku_attempts)


def _fail(exc: InventoryError) -> typer.Exit:
    if isinstance(exc, ValidationError):
        for field, message in exc.errors.items():
            typer.secho(f"{field}: {message}", fg=typer.colors.RED)
    else:
        typer.secho(str(exc), fg=typer.colors.RED)
    return typer.Exit(code=1)


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Hostname to bind"),
    port: Optional[int] = typer.Option(None, help="Port to expose"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
    log_level: Optional[str] = typer.Option(None, help="Uvicorn log level"),
) -> None:
    """Start the FastAPI service using Uvicorn."""

    settings = _resolve_settings()

    uvicorn.run(
        "textile_stock.app:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.reload if reload is None else reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command()
def init_db() -> None:
    """Create the SQLite database and tables."""

    settings = _resolve_settings()
    typer.echo(f"Database initialised at {settings.database_path}")


@app.command("create-user")
def create_user_cmd(
    username: str = typer.Argument(..., help="Unique login name"),
    full_name: Optional[str] = typer.Option(None, help="Display name"),
) -> None:
    """Create a user and print its API token."""

    settings = _resolve_settings()
    with session_scope() as session:
        if get_user_by_username(session, username):
            typer.secho("User already exists", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        try:
            user, token = create_user(
                session, schemas.UserCreate(username=username, full_name=full_name), settings.secret_key
            )
        except DuplicateUsernameError as exc:  # pragma: no cover - handled above
            typer.secho(str(exc), fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc
        typer.secho(f"Created user {user.username} (id={user.id})", fg=typer.colors.GREEN)
        typer.echo(f"API token: {token}")


@app.command("rotate-token")
def rotate_token_cmd(username: str = typer.Argument(..., help="User whose token is replaced")) -> None:
    """Issue a new API token, invalidating the previous one."""

    settings = _resolve_settings()
    with session_scope() as session:
        user = get_user_by_username(session, username)
        if not user:
            typer.secho(f"No user named {username}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        typer.echo(f"API token: {rotate_token(session, user, settings.secret_key)}")


@app.command("list-users")
def list_users_cmd() -> None:
    """Display users stored in the database."""

    _resolve_settings()
    with session_scope() as session:
        users = list_users(session)
        if not users:
            typer.echo("No users found.")
            return
        _print_header("Existing users")
        for user in users:
            typer.echo(f"- #{user.id} {user.username} | active={user.is_active}")


@app.command()
def show_paths() -> None:
    """Print out important filesystem paths."""

    settings = _resolve_settings()
    typer.echo(f"Database: {settings.database_path}")
    typer.echo(f"Config directory: {settings.database_path.parent}")
    typer.echo(f"Token key: {settings.secret_key_path}")


@app.command("list-items")
def list_items_cmd(
    user: str = typer.Option(..., "--user", "-u", help=_USER_HELP),
    search: Optional[str] = typer.Option(None, help="Match name, SKU or supplier"),
    category: Optional[ItemCategory] = typer.Option(None, help="Only this category"),
    low_stock: bool = typer.Option(False, "--low-stock", help="Only items at or below minimum stock"),
) -> None:
    """List inventory items with their stock status."""

    _resolve_settings()
    with session_scope() as session:
        items = _service_for(session, user).items(search=search, category=category, low_stock_only=low_stock)
        if not items:
            typer.echo("No items found.")
            return
        _print_header("Inventory")
        for item in items:
            typer.echo(
                f"- #{item.id} {item.sku} {item.name} | {format_quantity(item.current_stock)} {item.unit}"
                f" (min {format_quantity(item.min_stock)}, max {format_quantity(item.max_stock)})"
                f" | {derive_status(item).value}"
            )


@app.command("add-item")
def add_item(
    name: str = typer.Argument(..., help="Item name"),
    user: str = typer.Option(..., "--user", "-u", help=_USER_HELP),
    category: ItemCategory = typer.Option(ItemCategory.CHEMICAL, help="Item category"),
    unit: str = typer.Option("kg", help="Stock unit"),
    sku: str = typer.Option("", help="SKU; generated when omitted"),
    stock: float = typer.Option(0.0, help="Opening stock"),
    min_stock: float = typer.Option(0.0, help="Low-stock threshold"),
    max_stock: float = typer.Option(0.0, help="Overstock threshold"),
    unit_price: float = typer.Option(0.0, help="Price per unit"),
    supplier: str = typer.Option("", help="Supplier name"),
    location: str = typer.Option("", help="Storage location"),
) -> None:
    """Add an inventory item."""

    _resolve_settings()
    with session_scope() as session:
        service = _service_for(session, user)
        try:
            item = service.add_item(
                {
                    "name": name,
                    "category": category,
                    "unit": unit,
                    "sku": sku,
                    "current_stock": stock,
                    "min_stock": min_stock,
                    "max_stock": max_stock,
                    "unit_price": unit_price,
                    "supplier": supplier,
                    "location": location,
                }
            )
        except InventoryError as exc:
            raise _fail(exc) from exc
        typer.secho(f"Added {item.name} as {item.sku} (id={item.id})", fg=typer.colors.GREEN)


@app.command()
def record(
    item_id: int = typer.Argument(..., help="Item id"),
    kind: TransactionType = typer.Argument(..., help="in, out or adjustment"),
    quantity: float = typer.Argument(..., help="Delta for in/out, new level for adjustment"),
    user: str = typer.Option(..., "--user", "-u", help=_USER_HELP),
    reason: str = typer.Option(..., "--reason", "-r", help="Why the stock changed"),
    reference: Optional[str] = typer.Option(None, help="PO number or similar"),
    notes: Optional[str] = typer.Option(None, help="Free text notes"),
) -> None:
    """Record a stock transaction against an item."""

    _resolve_settings()
    with session_scope() as session:
        service = _service_for(session, user)
        request = TransactionRequest(
            item_id=item_id, type=kind, quantity=quantity, reason=reason, reference=reference, notes=notes
        )
        try:
            entry = service.record_transaction(request)
        except InventoryError as exc:
            raise _fail(exc) from exc
        typer.secho(
            f"Stock of item {item_id}: {format_quantity(entry.previous_stock)} -> {format_quantity(entry.new_stock)}",
            fg=typer.colors.GREEN,
        )


@app.command()
def history(
    user: str = typer.Option(..., "--user", "-u", help=_USER_HELP),
    item_id: Optional[int] = typer.Option(None, "--item", help="Only this item"),
    kind: Optional[TransactionType] = typer.Option(None, "--type", help="Only in, out or adjustment"),
) -> None:
    """Show stock transactions, newest first."""

    _resolve_settings()
    with session_scope() as session:
        transactions = _service_for(session, user).history(item_id, kind=kind)
        if not transactions:
            typer.echo("No transactions recorded.")
            return
        _print_header("Stock transactions")
        for txn in transactions:
            reference = f" [{txn.reference}]" if txn.reference else ""
            typer.echo(
                f"- {txn.timestamp:%Y-%m-%d %H:%M} item #{txn.item_id} {txn.type.value}"
                f" {format_quantity(txn.quantity)} ({txn.reason}){reference}"
            )


@app.command()
def alerts(user: str = typer.Option(..., "--user", "-u", help=_USER_HELP)) -> None:
    """Show low-stock alerts."""

    _resolve_settings()
    with session_scope() as session:
        found = derive_alerts(_service_for(session, user).items())
        if not found:
            typer.echo("No low stock alerts at this time.")
            return
        _print_header("Low stock alerts")
        for alert in found:
            colour = typer.colors.RED if alert.severity is AlertSeverity.CRITICAL else typer.colors.YELLOW
            typer.secho(
                f"- {alert.item_name}: {format_quantity(alert.current_stock)}"
                f" (minimum {format_quantity(alert.min_stock)}) {alert.severity.value}",
                fg=colour,
            )


@app.command()
def stats(user: str = typer.Option(..., "--user", "-u", help=_USER_HELP)) -> None:
    """Show inventory totals."""

    _resolve_settings()
    with session_scope() as session:
        summary = _service_for(session, user).stats()
    typer.echo(f"Total items: {summary.total_items}")
    typer.echo(f"Total value: {summary.total_value:.2f}")
    typer.echo(f"Low stock: {summary.low_stock_count}")
    typer.echo(f"Out of stock: {summary.out_of_stock_count}")


def main() -> None:
    """Entry-point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
