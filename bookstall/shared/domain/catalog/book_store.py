"""Seller books: paginated cache plus the add-book write-through."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from bookstall.shared.core import events
from bookstall.shared.core.errors import ApiError, DecodeError, ErrorInfo
from bookstall.shared.core.event_bus import EventBus
from bookstall.shared.domain.catalog.models import UNKNOWN_CATEGORY_NAME, Book, BookCategory, NewBook
from bookstall.shared.domain.pagination.resource_store import PaginatedResourceStore
from bookstall.shared.domain.results import ActionResult
from bookstall.shared.domain.session.session_store import SessionStore
from bookstall.shared.infrastructure.api.client import ApiClient

logger = logging.getLogger(__name__)

NOT_LOGGED_IN_MESSAGE = "You must be logged in to add books"


class BookStore(PaginatedResourceStore[Book]):
    name = "books"
    endpoint = "/api/seller/books"
    response_key = "books"
    item_model = Book


class BookActions:
    """Write-through catalog mutations issued by the product screens."""

    def __init__(
        self,
        api: ApiClient,
        books: BookStore,
        session: SessionStore,
        event_bus: EventBus,
    ):
        self.api = api
        self.books = books
        self.session = session
        self.event_bus = event_bus

    async def add_book(self, new_book: NewBook) -> ActionResult:
        """Create a book on the server and put it at the head of the cache."""
        user = self.session.user
        if user is None or not self.session.is_session_valid():
            return ActionResult(
                ok=False,
                error=ErrorInfo(kind="server", message=NOT_LOGGED_IN_MESSAGE, status=401),
            )

        try:
            response = await self.api.post(self.books.endpoint, new_book.to_payload(user.id))
            book = self._book_from_response(response, new_book)
        except ApiError as exc:
            logger.error(f"Failed to add book '{new_book.title}': {exc.message}")
            return ActionResult.failure(exc)

        await self.books.prepend(book)
        logger.info(f"Book {book.id} '{book.title}' added")
        await self.event_bus.publish(
            events.TOPIC_BOOK_ADDED,
            events.create_book_added_event(book.id, book.title),
        )
        return ActionResult.success(book)

    @staticmethod
    def _book_from_response(response: object, new_book: NewBook) -> Book:
        """Fill the defaults the server may leave out of a creation response."""
        if not isinstance(response, dict) or not response.get("id"):
            raise DecodeError("Invalid response from server")
        now = datetime.now(timezone.utc)
        data = dict(response)
        data.setdefault("isApproved", True)
        data.setdefault("rating", 0)
        data.setdefault("categoryId", new_book.category_id)
        if not data.get("category"):
            data["category"] = BookCategory(
                id=data["categoryId"], name=UNKNOWN_CATEGORY_NAME
            ).model_dump()
        data["createdAt"] = data.get("createdAt") or now
        data["updatedAt"] = data.get("updatedAt") or now
        for key, value in (
            ("title", new_book.title),
            ("author", new_book.author),
            ("price", new_book.price),
            ("stock", new_book.stock),
        ):
            data.setdefault(key, value)
        try:
            return Book.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"Invalid response from server: {e.error_count()} error(s)") from e
