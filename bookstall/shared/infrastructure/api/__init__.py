"""REST API adapter (httpx)."""

from bookstall.shared.infrastructure.api.client import ApiClient

__all__ = ["ApiClient"]
