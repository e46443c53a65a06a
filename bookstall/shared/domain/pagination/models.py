"""Pagination cursor and collection snapshot types."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from bookstall.shared.core.errors import DecodeError, ErrorInfo


def expected_total_pages(total_items: int, page_size: int) -> int:
    """ceil(total / size) when there are items, else 0."""
    if total_items <= 0:
        return 0
    return math.ceil(total_items / page_size)


class PaginationCursor(BaseModel):
    """Server pagination metadata (wire keys: page, limit, total, pages)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_index: int = Field(ge=1, alias="page")
    page_size: int = Field(gt=0, alias="limit")
    total_items: int = Field(ge=0, alias="total")
    total_pages: int = Field(ge=0, alias="pages")

    @classmethod
    def from_wire(cls, data: Any) -> "PaginationCursor":
        if not isinstance(data, dict):
            raise DecodeError("Response is missing pagination metadata")
        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise DecodeError(f"Invalid pagination metadata: {e}") from e

    def to_wire(self) -> Dict[str, int]:
        return self.model_dump(by_alias=True)

    @property
    def is_consistent(self) -> bool:
        return self.total_pages == expected_total_pages(self.total_items, self.page_size)

    @property
    def is_fully_loaded(self) -> bool:
        # total_pages == 0 means "nothing fetched / empty", never "fully loaded"
        return self.total_pages > 0 and self.page_index >= self.total_pages

    @property
    def has_more(self) -> bool:
        return self.page_index < self.total_pages

    def with_total_items(self, total_items: int) -> "PaginationCursor":
        return self.model_copy(update={
            "total_items": total_items,
            "total_pages": expected_total_pages(total_items, self.page_size),
        })


class CollectionPhase(str, Enum):
    """Loading state of one collection; at most one loading flag can be true."""
    IDLE = "idle"
    LOADING_INITIAL = "loading_initial"
    LOADING_MORE = "loading_more"
    REFRESHING = "refreshing"


T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class ResourceCollection(Generic[T]):
    """Immutable snapshot of a paginated collection."""

    items: Tuple[T, ...] = ()
    cursor: Optional[PaginationCursor] = None
    phase: CollectionPhase = CollectionPhase.IDLE
    last_error: Optional[ErrorInfo] = None

    @property
    def is_loading_initial(self) -> bool:
        return self.phase is CollectionPhase.LOADING_INITIAL

    @property
    def is_loading_more(self) -> bool:
        return self.phase is CollectionPhase.LOADING_MORE

    @property
    def is_refreshing(self) -> bool:
        return self.phase is CollectionPhase.REFRESHING

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self.items]  # type: ignore[attr-defined]
