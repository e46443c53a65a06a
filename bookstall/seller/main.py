"""Bookstall seller - headless entry point.

Boots the same services the app shell uses (config, logging, storage, API
client, event bus, Store), restores the persisted session, optionally logs in,
syncs the first page of orders and books, and prints a summary.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from bookstall.seller.state import Store
from bookstall.shared.core import events
from bookstall.shared.core.configuration import SystemConfig, ValidationLevel, get_config_manager
from bookstall.shared.core.event_bus import EventBus, EventPayload
from bookstall.shared.core.logging_setup import configure_logging
from bookstall.shared.core.service_registry import register_cleanup_handler
from bookstall.shared.domain.session.models import UserRole
from bookstall.shared.infrastructure.api.client import ApiClient
from bookstall.shared.infrastructure.persistence.kv_storage import DuckDBKeyValueStorage

logger = logging.getLogger(__name__)
console = Console()


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bookstall-sync", description=__doc__)
    parser.add_argument("--email", default=os.getenv("BOOKSTALL_EMAIL"))
    parser.add_argument("--password", default=os.getenv("BOOKSTALL_PASSWORD"))
    parser.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.SELLER.value)
    parser.add_argument("--logout", action="store_true", help="Clear the stored session and cache")
    parser.add_argument("--project-root", type=Path, default=None)
    return parser.parse_args(argv)


async def _show_banner(payload: EventPayload) -> None:
    level = payload.get("level", "info")
    style = {"warning": "yellow", "error": "red", "success": "green"}.get(level, "cyan")
    console.print(f"[{style}]{payload.get('message')}[/{style}]")


def _render_summary(store: Store) -> None:
    session_user = store.session.user
    if session_user is not None:
        console.print(
            f"Signed in as [bold]{session_user.display_name or session_user.email}[/bold] "
            f"({session_user.role.value})"
        )

    orders = Table(title="Orders")
    for column in ("Number", "Status", "Total", "Buyer"):
        orders.add_column(column)
    for order in store.orders.items:
        orders.add_row(order.order_number, order.status.value, f"{order.total_amount:.2f}", order.buyer.name)
    console.print(orders)

    books = Table(title="Books")
    for column in ("Title", "Author", "Price", "Stock", "Approved"):
        books.add_column(column)
    for book in store.books.items:
        books.add_row(book.title, book.author, f"{book.price:.2f}", str(book.stock), "yes" if book.is_approved else "no")
    console.print(books)

    for collection in (store.orders, store.books):
        if collection.last_error is not None:
            console.print(f"[red]{collection.name}: {collection.last_error.message}[/red]")


async def run(args: argparse.Namespace, config: SystemConfig) -> int:
    event_bus = EventBus()
    storage = DuckDBKeyValueStorage(config.storage.db_path)
    storage.start()
    register_cleanup_handler(storage.close)

    api = ApiClient(
        config.api.base_url,
        timeout=config.api.timeout,
        user_agent=config.api.user_agent,
    )
    store = Store.initialize(event_bus, api, storage, config)
    await event_bus.subscribe(events.TOPIC_LOGS_EVENT, _show_banner)

    try:
        await store.start()

        if args.logout:
            await store.logout()
            console.print("Signed out.")
            return 0

        if args.email and args.password:
            result = await store.auth.login(args.email, args.password, UserRole(args.role))
            if not result.ok:
                console.print(f"[red]Login failed: {result.error.message}[/red]")
                return 1
            if result.degraded:
                logger.warning("Signed in with a degraded identity (token could not be decoded)")

        if not store.session.is_authenticated:
            console.print("[yellow]Not signed in. Pass --email and --password.[/yellow]")
            return 1

        await asyncio.gather(store.orders.fetch_page(1), store.books.fetch_page(1))
        await event_bus.wait_until_idle()
        _render_summary(store)
        return 0
    finally:
        await api.aclose()
        Store.reset()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    project_root = (args.project_root or Path.cwd()).resolve()
    load_dotenv(dotenv_path=project_root / ".env")

    config = get_config_manager(project_root).get_config(ValidationLevel.LENIENT)
    if not Path(config.storage.db_path).is_absolute():
        config.storage.db_path = str(project_root / config.storage.db_path)
    configure_logging(config.logging, project_root)

    return asyncio.run(run(args, config))


if __name__ == "__main__":
    raise SystemExit(main())
