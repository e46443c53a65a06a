"""Generic page-accumulating collection store."""

from bookstall.shared.domain.pagination.models import (
    CollectionPhase,
    PaginationCursor,
    ResourceCollection,
    expected_total_pages,
)
from bookstall.shared.domain.pagination.resource_store import (
    DEFAULT_PAGE_SIZE,
    PaginatedResourceStore,
    dedupe_by_id,
)

__all__ = [
    "CollectionPhase",
    "PaginationCursor",
    "ResourceCollection",
    "expected_total_pages",
    "DEFAULT_PAGE_SIZE",
    "PaginatedResourceStore",
    "dedupe_by_id",
]
