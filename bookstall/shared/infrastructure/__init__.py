"""
Shared Infrastructure Module
=============================

Technical adapters for external systems (REST API, durable storage).
"""

from bookstall.shared.infrastructure.api.client import ApiClient
from bookstall.shared.infrastructure.persistence.kv_storage import DuckDBKeyValueStorage

__all__ = [
    "ApiClient",
    "DuckDBKeyValueStorage",
]
