"""Async HTTP client for the Bookstall REST API.

Thin wrapper over ``httpx.AsyncClient`` that attaches the bearer token and
maps every failure onto the error taxonomy in ``bookstall.shared.core.errors``.
Retries are not attempted here or by the stores: any failure is terminal for
that call.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

import httpx

from bookstall.shared.core.errors import DecodeError, NetworkError, ServerError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


class ApiClient:
    """Authenticated JSON client.

    Args:
        base_url: Root URL of the API (``/api/...`` paths are appended)
        timeout: Request timeout in seconds
        token_provider: Callable returning the current bearer token or None
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        user_agent: Value for the User-Agent header
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = "bookstall-seller/0.1",
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json", "User-Agent": user_agent},
        )

    def _auth_headers(self) -> dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Returns:
            Decoded JSON, or None for an empty 2xx body

        Raises:
            NetworkError: No response was received
            ServerError: Non-2xx status
            DecodeError: 2xx body that is not JSON
        """
        method = method.upper()
        try:
            response = await self._client.request(
                method,
                path,
                json=body,
                params=params,
                headers=self._auth_headers(),
            )
        except httpx.RequestError as e:
            logger.warning("%s %s failed without a response: %s", method, path, e)
            raise NetworkError() from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return _handle_response(response)

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, body=body)

    async def patch(self, path: str, body: Any = None) -> Any:
        return await self.request("PATCH", path, body=body)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _handle_response(response: httpx.Response) -> Any:
    """Decode a response or raise the matching ApiError."""
    if response.is_success:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError("Malformed response from server", status=response.status_code) from e

    try:
        body = response.json()
    except ValueError:
        body = None
    error = ServerError.from_body(response.status_code, body)
    logger.info(
        "%s %s rejected with %s: %s",
        response.request.method,
        response.request.url.path,
        response.status_code,
        error.message,
    )
    raise error
