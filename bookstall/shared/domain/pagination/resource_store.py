"""Paginated Resource Store.

Generic page-accumulating cache over a remote paginated endpoint. Concrete
stores (orders, books) only declare the endpoint, the response key that holds
the page items, and the item model.

State machine per collection::

    IDLE -> LOADING_INITIAL -> IDLE      (fetch_page(1))
    IDLE -> LOADING_MORE    -> IDLE      (load_more / fetch_page(n > 1))
    IDLE -> REFRESHING      -> IDLE      (refresh)

A failure returns to IDLE with ``last_error`` set and leaves the cached items
and cursor untouched. ``refresh`` may also start while an initial load or a
load-more is in flight; the superseded response is then discarded.

Every started fetch takes a new generation number. A response is applied only
if its generation is still the current one, so a late response can never
overwrite data from a newer fetch (or repopulate a cleared collection).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, ClassVar, Dict, Generic, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from bookstall.shared.core import events
from bookstall.shared.core.errors import ApiError, DecodeError, ErrorInfo, NetworkError
from bookstall.shared.core.event_bus import EventBus
from bookstall.shared.domain.pagination.models import (
    CollectionPhase,
    PaginationCursor,
    ResourceCollection,
)
from bookstall.shared.infrastructure.api.client import ApiClient
from bookstall.shared.infrastructure.persistence.kv_storage import DuckDBKeyValueStorage

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_PAGE_SIZE = 10


def _item_id(item: BaseModel) -> str:
    return getattr(item, "id")


def dedupe_by_id(items: Iterable[T]) -> List[T]:
    """Drop repeated ids, keeping the first position and the last values."""
    result: List[T] = []
    index: Dict[str, int] = {}
    for item in items:
        key = _item_id(item)
        if key in index:
            result[index[key]] = item
        else:
            index[key] = len(result)
            result.append(item)
    return result


class PaginatedResourceStore(Generic[T]):
    """Cached, paginated collection of one resource type."""

    name: ClassVar[str] = "resource"
    endpoint: ClassVar[str]
    response_key: ClassVar[str]
    item_model: ClassVar[Type[BaseModel]]

    def __init__(
        self,
        api: ApiClient,
        storage: DuckDBKeyValueStorage,
        event_bus: EventBus,
        storage_key: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.api = api
        self.storage = storage
        self.event_bus = event_bus
        self.storage_key = storage_key
        self.page_size = page_size

        self._items: List[T] = []
        self._cursor: Optional[PaginationCursor] = None
        self._phase = CollectionPhase.IDLE
        self._last_error: Optional[ErrorInfo] = None
        self._generation = 0
        # Guards phase/generation so the IDLE -> busy transition is a compare-and-swap
        self._state_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def items(self) -> Tuple[T, ...]:
        return tuple(self._items)

    @property
    def cursor(self) -> Optional[PaginationCursor]:
        return self._cursor

    @property
    def phase(self) -> CollectionPhase:
        return self._phase

    @property
    def last_error(self) -> Optional[ErrorInfo]:
        return self._last_error

    @property
    def is_loading_initial(self) -> bool:
        return self._phase is CollectionPhase.LOADING_INITIAL

    @property
    def is_loading_more(self) -> bool:
        return self._phase is CollectionPhase.LOADING_MORE

    @property
    def is_refreshing(self) -> bool:
        return self._phase is CollectionPhase.REFRESHING

    def snapshot(self) -> ResourceCollection[T]:
        with self._state_lock:
            return ResourceCollection(
                items=tuple(self._items),
                cursor=self._cursor,
                phase=self._phase,
                last_error=self._last_error,
            )

    def find(self, item_id: str) -> Optional[T]:
        for item in self._items:
            if _item_id(item) == item_id:
                return item
        return None

    # ------------------------------------------------------------------
    # Remote synchronization
    # ------------------------------------------------------------------

    async def fetch_page(self, page: int) -> bool:
        """Fetch one page. Page 1 replaces the cache, later pages append.

        Returns:
            True if a request was issued, False if the collection was busy
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        phase = CollectionPhase.LOADING_INITIAL if page == 1 else CollectionPhase.LOADING_MORE
        with self._state_lock:
            if self._phase is not CollectionPhase.IDLE:
                logger.debug(f"[{self.name}] fetch_page({page}) ignored: {self._phase.value}")
                return False
            generation = self._begin_locked(phase)
        await self._run_fetch(page, generation)
        return True

    async def refresh(self) -> bool:
        """Pull-to-refresh: refetch page 1 under the REFRESHING phase.

        Supersedes an in-flight initial load or load-more. A second refresh
        while one is running is a no-op.
        """
        with self._state_lock:
            if self._phase is CollectionPhase.REFRESHING:
                logger.debug(f"[{self.name}] refresh ignored: already refreshing")
                return False
            if self._phase is not CollectionPhase.IDLE:
                logger.info(f"[{self.name}] refresh supersedes in-flight {self._phase.value}")
            generation = self._begin_locked(CollectionPhase.REFRESHING)
        await self._run_fetch(1, generation)
        return True

    async def load_more(self) -> bool:
        """Fetch the page after the cursor, if there is one and nothing is in flight."""
        with self._state_lock:
            cursor = self._cursor
            if cursor is None:
                logger.debug(f"[{self.name}] load_more ignored: no cursor yet")
                return False
            if self._phase is not CollectionPhase.IDLE:
                logger.debug(f"[{self.name}] load_more ignored: {self._phase.value}")
                return False
            if cursor.page_index >= cursor.total_pages:
                logger.debug(f"[{self.name}] load_more ignored: all {cursor.total_pages} page(s) loaded")
                return False
            page = cursor.page_index + 1
            generation = self._begin_locked(CollectionPhase.LOADING_MORE)
        await self._run_fetch(page, generation)
        return True

    def _begin_locked(self, phase: CollectionPhase) -> int:
        self._phase = phase
        self._generation += 1
        return self._generation

    async def _run_fetch(self, page: int, generation: int) -> None:
        try:
            await self._publish_change()
            payload = await self.api.get(
                self.endpoint, params={"page": page, "limit": self.page_size}
            )
            items, cursor = self._parse_page(payload)
        except ApiError as exc:
            if self._apply_failure(generation, exc):
                await self._report_failure(exc)
                await self._publish_change()
            return
        except BaseException:
            # Cancellation or a bug: release the phase, then let it propagate
            self._release(generation)
            raise

        if self._apply_page(generation, page, items, cursor):
            logger.info(
                f"[{self.name}] page {page} synced: {len(items)} item(s), "
                f"{len(self._items)} cached, page {cursor.page_index}/{cursor.total_pages}"
            )
            await self._persist()
            await self._publish_change()

    def _parse_page(self, payload: Any) -> Tuple[List[T], PaginationCursor]:
        if not isinstance(payload, dict):
            raise DecodeError(f"Unexpected {self.name} response")
        raw_items = payload.get(self.response_key)
        if not isinstance(raw_items, list):
            raise DecodeError(f"Response is missing '{self.response_key}'")
        try:
            items = [self.item_model.model_validate(raw) for raw in raw_items]
        except ValidationError as e:
            raise DecodeError(f"Malformed {self.name} in response: {e.error_count()} error(s)") from e
        cursor = PaginationCursor.from_wire(payload.get("pagination"))
        if not cursor.is_consistent:
            logger.warning(
                f"[{self.name}] server reported {cursor.total_pages} page(s) for "
                f"{cursor.total_items} item(s) at {cursor.page_size} per page"
            )
        return items, cursor  # type: ignore[return-value]

    def _apply_page(
        self, generation: int, page: int, items: List[T], cursor: PaginationCursor
    ) -> bool:
        with self._state_lock:
            if generation != self._generation:
                logger.debug(f"[{self.name}] discarding stale page {page} (generation {generation})")
                return False
            if page == 1:
                self._items = dedupe_by_id(items)
            else:
                self._items = self._merge_append(self._items, items)
            self._cursor = cursor
            self._last_error = None
            self._phase = CollectionPhase.IDLE
            return True

    @staticmethod
    def _merge_append(current: List[T], incoming: List[T]) -> List[T]:
        """Append new ids; an id already cached is overwritten in place."""
        merged = list(current)
        index = {_item_id(item): i for i, item in enumerate(merged)}
        for item in incoming:
            key = _item_id(item)
            if key in index:
                merged[index[key]] = item
            else:
                index[key] = len(merged)
                merged.append(item)
        return merged

    def _apply_failure(self, generation: int, exc: ApiError) -> bool:
        with self._state_lock:
            if generation != self._generation:
                logger.debug(f"[{self.name}] discarding stale failure: {exc.message}")
                return False
            self._last_error = ErrorInfo.for_collection(exc)
            self._phase = CollectionPhase.IDLE
            return True

    def _release(self, generation: int) -> None:
        with self._state_lock:
            if generation == self._generation:
                self._phase = CollectionPhase.IDLE

    async def _report_failure(self, exc: ApiError) -> None:
        if isinstance(exc, NetworkError):
            logger.warning(f"[{self.name}] sync failed, keeping cached data: {exc.message}")
            await self.event_bus.publish(
                events.TOPIC_LOGS_EVENT,
                events.create_logs_event(exc.message, "warning", topic=self.name),
            )
        else:
            logger.error(f"[{self.name}] sync failed ({exc.status}): {exc.message}")

    # ------------------------------------------------------------------
    # Local mutation
    # ------------------------------------------------------------------

    async def mutate_local(
        self,
        predicate: Callable[[T], bool],
        transform: Callable[[T], T],
    ) -> int:
        """Apply ``transform`` to every cached item matching ``predicate``.

        Used for optimistic updates after a successful write; the next
        successful page-1 fetch supersedes whatever was changed here.

        Returns:
            Number of items changed
        """
        with self._state_lock:
            changed = 0
            updated: List[T] = []
            for item in self._items:
                if predicate(item):
                    item = transform(item)
                    changed += 1
                updated.append(item)
            if changed:
                self._items = updated
        if changed:
            await self._persist()
            await self._publish_change()
        return changed

    async def prepend(self, item: T) -> None:
        """Insert a newly created item at the head of the collection."""
        key = _item_id(item)
        with self._state_lock:
            existing = [i for i in self._items if _item_id(i) != key]
            is_new = len(existing) == len(self._items)
            self._items = [item] + existing
            if self._cursor is not None and is_new:
                self._cursor = self._cursor.with_total_items(self._cursor.total_items + 1)
        await self._persist()
        await self._publish_change()

    async def clear(self) -> None:
        """Forget everything, including any response still in flight."""
        with self._state_lock:
            self._generation += 1
            self._phase = CollectionPhase.IDLE
            self._items = []
            self._cursor = None
            self._last_error = None
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.storage.delete_document, self.storage_key)
        except Exception as e:
            logger.error(f"[{self.name}] failed to delete persisted collection: {e}")
        logger.info(f"[{self.name}] collection cleared")
        await self._publish_change()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_document(self) -> Dict[str, Any]:
        """Serializable form of the collection minus loading and error state."""
        with self._state_lock:
            return {
                "items": [item.model_dump(mode="json", by_alias=True) for item in self._items],
                "cursor": self._cursor.to_wire() if self._cursor else None,
            }

    async def _persist(self) -> None:
        document = self.to_document()
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.storage.save_document, self.storage_key, document)
        except Exception as e:
            logger.error(f"[{self.name}] failed to persist collection: {e}")

    async def rehydrate(self) -> bool:
        """Load the persisted collection saved by a previous run.

        Returns:
            True if a persisted collection was restored
        """
        loop = asyncio.get_running_loop()
        document = await loop.run_in_executor(None, self.storage.load_document, self.storage_key)
        if not document:
            return False
        try:
            items = [self.item_model.model_validate(raw) for raw in document.get("items") or []]
            raw_cursor = document.get("cursor")
            cursor = PaginationCursor.from_wire(raw_cursor) if raw_cursor else None
        except (ValidationError, DecodeError) as e:
            logger.error(f"[{self.name}] discarding unreadable persisted collection: {e}")
            return False

        with self._state_lock:
            self._items = dedupe_by_id(items)  # type: ignore[arg-type]
            self._cursor = cursor
        logger.info(f"[{self.name}] restored {len(self._items)} cached item(s)")
        await self._publish_change()
        return True

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    async def _publish_change(self) -> None:
        snapshot = self.snapshot()
        await self.event_bus.publish(
            events.TOPIC_COLLECTION_CHANGED,
            events.create_collection_changed_event(
                collection=self.name,
                phase=snapshot.phase.value,
                item_count=len(snapshot.items),
                page=snapshot.cursor.page_index if snapshot.cursor else None,
                pages=snapshot.cursor.total_pages if snapshot.cursor else None,
                error=snapshot.last_error.model_dump() if snapshot.last_error else None,
            ),
        )
