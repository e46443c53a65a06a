"""Global State Store - Service Locator Pattern.

Provides centralized access to the session and the seller collections from
any screen controller. The instance is built once at app start and reset
between tests.
"""

from __future__ import annotations

import logging
from typing import Optional

from bookstall.shared.core.configuration import SystemConfig
from bookstall.shared.core.event_bus import EventBus
from bookstall.shared.domain.catalog.book_store import BookActions, BookStore
from bookstall.shared.domain.orders.order_store import OrderActions, OrderStore
from bookstall.shared.domain.session.auth_service import AuthService
from bookstall.shared.domain.session.session_store import SessionStore
from bookstall.shared.infrastructure.api.client import ApiClient
from bookstall.shared.infrastructure.persistence.kv_storage import DuckDBKeyValueStorage

logger = logging.getLogger(__name__)


class Store:
    """Global state store for the seller application.

    Usage:
        # During app initialization
        store = Store.initialize(event_bus, api, storage, config)
        await store.start()

        # In any screen controller
        store = Store.get()
        await store.orders.load_more()
    """

    _instance: Optional['Store'] = None

    def __init__(
        self,
        event_bus: EventBus,
        api: ApiClient,
        storage: DuckDBKeyValueStorage,
        config: SystemConfig,
    ) -> None:
        """Wire the stores together.

        Note: Do not call directly. Use Store.initialize() instead.
        """
        self.bus = event_bus
        self.api = api
        self.storage = storage
        self.config = config

        keys = config.storage
        page_size = config.pagination.page_size

        self.session = SessionStore(storage, event_bus, storage_key=keys.session_key)
        if api.token_provider is None:
            api.token_provider = self.session.bearer_token

        self.orders = OrderStore(api, storage, event_bus, keys.orders_key, page_size=page_size)
        self.books = BookStore(api, storage, event_bus, keys.books_key, page_size=page_size)

        self.auth = AuthService(api, self.session)
        for collection in (self.orders, self.books):
            self.auth.register_collection(collection)
        self.order_actions = OrderActions(api, self.orders, event_bus)
        self.book_actions = BookActions(api, self.books, self.session, event_bus)

    @classmethod
    def initialize(
        cls,
        event_bus: EventBus,
        api: ApiClient,
        storage: DuckDBKeyValueStorage,
        config: Optional[SystemConfig] = None,
    ) -> 'Store':
        """Initialize the global store instance.

        Should be called once during application startup before any screen
        controllers are created.

        Raises:
            RuntimeError: If store is already initialized
        """
        if cls._instance is not None:
            raise RuntimeError("Store already initialized!")

        cls._instance = cls(event_bus, api, storage, config or SystemConfig())
        return cls._instance

    @classmethod
    def get(cls) -> 'Store':
        """Get the global store instance.

        Raises:
            RuntimeError: If store has not been initialized
        """
        if cls._instance is None:
            raise RuntimeError("Store not initialized! Call Store.initialize() first.")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the store instance.

        Primarily used for testing. In production, store persists for
        application lifetime.
        """
        cls._instance = None

    async def start(self) -> None:
        """Restore persisted state from the previous run."""
        await self.session.rehydrate()
        await self.orders.rehydrate()
        await self.books.rehydrate()
        logger.info(
            f"Store started: authenticated={self.session.is_authenticated}, "
            f"orders={len(self.orders.items)}, books={len(self.books.items)}"
        )

    async def logout(self) -> None:
        await self.auth.logout()
