"""Shared fixtures: a scripted fake API server behind httpx.MockTransport,
in-memory DuckDB storage, and entity factories."""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import jwt
import pytest
import pytest_asyncio

from bookstall.shared.core.event_bus import EventBus, EventPayload
from bookstall.shared.domain.catalog.book_store import BookStore
from bookstall.shared.domain.orders.order_store import OrderStore
from bookstall.shared.domain.session.session_store import SessionStore
from bookstall.shared.infrastructure.api.client import ApiClient
from bookstall.shared.infrastructure.persistence.kv_storage import DuckDBKeyValueStorage

BASE_URL = "http://api.test"

Responder = Any  # httpx.Response | Exception | Callable[[httpx.Request], Response | Awaitable]


class FakeServer:
    """Scripted API: queue responders per (method, path).

    The last responder of a queue is reused once the others are consumed.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], List[Responder]] = {}
        self.arrived = asyncio.Event()

    def add(self, method: str, path: str, *responders: Responder) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(responders)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.arrived.set()
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"no route for {request.url.path}"})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(responder, BaseException):
            raise responder
        if isinstance(responder, httpx.Response):
            return responder
        result = responder(request)
        if inspect.isawaitable(result):
            result = await result
        return result


class Gate:
    """Holds a response until released, to keep a request in flight."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.entered.set()
        await self.release.wait()
        return self.response


def make_order(n: int, status: str = "PENDING", **overrides: Any) -> Dict[str, Any]:
    order = {
        "id": f"o{n}",
        "orderNumber": f"ORD-{n:04d}",
        "status": status,
        "totalAmount": 10.0 * n,
        "user": {"id": f"u{n}", "name": f"Buyer {n}", "email": f"buyer{n}@example.com"},
        "items": [
            {
                "id": f"li{n}",
                "bookId": f"b{n}",
                "book": {"id": f"b{n}", "title": f"Book {n}", "author": "Author", "price": 10.0 * n},
                "quantity": 1,
                "price": 10.0 * n,
            }
        ],
        "createdAt": "2024-05-01T10:00:00Z",
        "updatedAt": "2024-05-01T10:00:00Z",
    }
    order.update(overrides)
    return order


def make_book(n: int, **overrides: Any) -> Dict[str, Any]:
    book = {
        "id": f"b{n}",
        "title": f"Book {n}",
        "author": "Author",
        "price": 5.0 + n,
        "stock": n,
        "categoryId": "c1",
        "category": {"id": "c1", "name": "Programming"},
        "isApproved": True,
        "rating": 4.5,
        "sellerId": "s1",
    }
    book.update(overrides)
    return book


def page_body(key: str, items: List[Dict[str, Any]], page: int, limit: int, total: int, pages: Optional[int] = None) -> Dict[str, Any]:
    if pages is None:
        pages = -(-total // limit) if total > 0 else 0
    return {key: items, "pagination": {"page": page, "limit": limit, "total": total, "pages": pages}}


def page_response(key: str, items: List[Dict[str, Any]], page: int, limit: int, total: int, pages: Optional[int] = None) -> httpx.Response:
    return httpx.Response(200, json=page_body(key, items, page, limit, total, pages))


def make_token(claims: Dict[str, Any], secret: str = "server-side-signing-secret-for-tests") -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


def future_ts(seconds: int = 3600) -> int:
    return int(time.time()) + seconds


class EventRecorder:
    """Collects every payload published on the subscribed topics."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, EventPayload]] = []

    def handler(self, topic: str) -> Callable[[EventPayload], Any]:
        async def record(payload: EventPayload) -> None:
            self.events.append((topic, payload))
        record.__name__ = f"record_{topic}"
        return record

    def of(self, topic: str) -> List[EventPayload]:
        return [payload for t, payload in self.events if t == topic]


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def storage():
    kv = DuckDBKeyValueStorage()
    kv.start()
    yield kv
    kv.close()


@pytest_asyncio.fixture
async def api(server: FakeServer):
    client = ApiClient(BASE_URL, transport=httpx.MockTransport(server))
    yield client
    await client.aclose()


@pytest.fixture
def orders(api: ApiClient, storage: DuckDBKeyValueStorage, event_bus: EventBus) -> OrderStore:
    return OrderStore(api, storage, event_bus, "order-storage", page_size=10)


@pytest.fixture
def books(api: ApiClient, storage: DuckDBKeyValueStorage, event_bus: EventBus) -> BookStore:
    return BookStore(api, storage, event_bus, "book-storage", page_size=10)


@pytest.fixture
def session(storage: DuckDBKeyValueStorage, event_bus: EventBus) -> SessionStore:
    return SessionStore(storage, event_bus, storage_key="auth-storage")


@pytest_asyncio.fixture
async def recorder(event_bus: EventBus) -> EventRecorder:
    rec = EventRecorder()
    for topic in ("collection.changed", "session.changed", "logs.event",
                  "order.status_changed", "book.added"):
        await event_bus.subscribe(topic, rec.handler(topic))
    return rec
