"""Canonical event definitions for Bookstall."""

from __future__ import annotations

import time
from typing import Any, Literal, Optional

from .event_bus import EventPayload

# Event Topics
TOPIC_LOGS_EVENT = "logs.event"
TOPIC_SESSION_CHANGED = "session.changed"
TOPIC_COLLECTION_CHANGED = "collection.changed"

# Write-through actions
TOPIC_ORDER_STATUS_CHANGED = "order.status_changed"
TOPIC_BOOK_ADDED = "book.added"


def create_logs_event(
    message: str,
    level: Literal["info", "warning", "error", "success"] = "info",
    topic: str | None = None,
) -> EventPayload:
    """Create a Log event (shown as a banner by the UI)."""
    return {
        "message": message,
        "level": level,
        "topic": topic,
        "ts": time.time(),
    }


def create_session_changed_event(
    is_authenticated: bool,
    user_id: Optional[str] = None,
    role: Optional[str] = None,
) -> EventPayload:
    return {
        "is_authenticated": is_authenticated,
        "user_id": user_id,
        "role": role,
    }


def create_collection_changed_event(
    collection: str,
    phase: str,
    item_count: int,
    page: int | None = None,
    pages: int | None = None,
    error: dict[str, Any] | None = None,
) -> EventPayload:
    """Create a collection changed event.

    Args:
        collection: Logical collection name ("orders", "books")
        phase: Current loading phase value
        item_count: Number of cached items
        page: Last fetched page index, if any
        pages: Total pages reported by the server, if any
        error: Serialized ErrorInfo of the last failure, if any
    """
    return {
        "collection": collection,
        "phase": phase,
        "item_count": item_count,
        "page": page,
        "pages": pages,
        "error": error,
    }


def create_order_status_changed_event(order_id: str, status: str) -> EventPayload:
    return {"order_id": order_id, "status": status}


def create_book_added_event(book_id: str, title: str) -> EventPayload:
    return {"book_id": book_id, "title": title}
