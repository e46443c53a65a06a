"""Persistence adapters (DuckDB)."""

from bookstall.shared.infrastructure.persistence.kv_storage import DuckDBKeyValueStorage

__all__ = ["DuckDBKeyValueStorage"]
