"""Login and registration exchanges that populate the Session Store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from bookstall.shared.core.errors import ApiError, DecodeError, ErrorInfo, ServerError
from bookstall.shared.domain.pagination.resource_store import PaginatedResourceStore
from bookstall.shared.domain.session.models import UserIdentity, UserRole
from bookstall.shared.domain.session.session_store import SessionStore
from bookstall.shared.domain.session.token import build_identity
from bookstall.shared.infrastructure.api.client import ApiClient

logger = logging.getLogger(__name__)

LOGIN_MESSAGES = {
    401: "Invalid password. Please check your credentials.",
    403: "Account access denied. Please contact support.",
    404: "Account not found. Please check your email or sign up.",
    429: "Too many login attempts. Please try again later.",
}
REGISTER_MESSAGES = {
    409: "An account with this email already exists",
}


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    user: Optional[UserIdentity] = None
    error: Optional[ErrorInfo] = None
    degraded: bool = False


class AuthService:
    """Runs the auth exchanges and owns the logout reset of user data."""

    def __init__(
        self,
        api: ApiClient,
        session: SessionStore,
        collections: Optional[List[PaginatedResourceStore[Any]]] = None,
    ) -> None:
        self.api = api
        self.session = session
        self.collections = list(collections or [])

    def register_collection(self, store: PaginatedResourceStore[Any]) -> None:
        if store not in self.collections:
            self.collections.append(store)

    async def login(self, email: str, password: str, role: UserRole) -> AuthResult:
        email = email.strip().lower()
        payload = {"email": email, "password": password.strip(), "role": role.value}
        logger.info(f"Logging in {email} as {role.value}")
        return await self._exchange("/api/auth/login", payload, role, email, None, LOGIN_MESSAGES)

    async def register(self, email: str, name: str, password: str, role: UserRole) -> AuthResult:
        email = email.strip().lower()
        name = name.strip()
        payload = {"email": email, "name": name, "password": password.strip(), "role": role.value}
        logger.info(f"Registering {email} as {role.value}")
        return await self._exchange("/api/auth/register", payload, role, email, name, REGISTER_MESSAGES)

    async def _exchange(
        self,
        path: str,
        payload: dict,
        role: UserRole,
        email: str,
        name: Optional[str],
        messages: dict[int, str],
    ) -> AuthResult:
        try:
            response = await self.api.post(path, payload)
            if not isinstance(response, dict):
                raise DecodeError("Unexpected response from server")
            token = response.get("token")
            if not isinstance(token, str) or not token:
                raise DecodeError("Token not found in response")
            identity, degraded = build_identity(
                response, token, fallback_role=role, fallback_email=email, fallback_name=name
            )
        except ApiError as exc:
            logger.error(f"Auth request to {path} failed: {exc.message}")
            return AuthResult(ok=False, error=self._describe(exc, messages))

        await self.session.login(identity, token)
        return AuthResult(ok=True, user=identity, degraded=degraded)

    @staticmethod
    def _describe(exc: ApiError, messages: dict[int, str]) -> ErrorInfo:
        info = ErrorInfo.from_exception(exc)
        if isinstance(exc, ServerError) and exc.status in messages:
            return info.model_copy(update={"message": messages[exc.status]})
        return info

    async def logout(self) -> None:
        """End the session and drop every cached collection of the previous user."""
        await self.session.logout()
        for store in self.collections:
            await store.clear()
