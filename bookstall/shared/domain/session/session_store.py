"""Session Store: the authenticated identity and bearer token.

The whole session is one immutable ``SessionState``; login and logout replace
it in a single assignment so user and token never disagree.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from bookstall.shared.core import events
from bookstall.shared.core.event_bus import EventBus
from bookstall.shared.domain.session.models import SessionState, UserIdentity, utc_now
from bookstall.shared.infrastructure.persistence.kv_storage import DuckDBKeyValueStorage

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SessionStore:
    """Owns login/logout and the persisted session document."""

    def __init__(
        self,
        storage: DuckDBKeyValueStorage,
        event_bus: EventBus,
        storage_key: str = "auth-storage",
        clock: Optional[Clock] = None,
    ) -> None:
        self.storage = storage
        self.event_bus = event_bus
        self.storage_key = storage_key
        self._clock = clock or utc_now
        self._state = SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[UserIdentity]:
        return self._state.user

    @property
    def token(self) -> Optional[str]:
        return self._state.token

    @property
    def is_authenticated(self) -> bool:
        return self.is_session_valid()

    def is_session_valid(self) -> bool:
        """True when user and token are present and the token is not expired."""
        return self._state.is_valid_at(self._clock())

    def bearer_token(self) -> Optional[str]:
        """Token provider for the API client; None once the session is invalid."""
        return self._state.token if self.is_session_valid() else None

    async def login(self, identity: UserIdentity, token: str) -> None:
        if not token:
            raise ValueError("Cannot log in without a token")
        self._state = SessionState(user=identity, token=token)
        logger.info(f"Session started for user {identity.id} ({identity.role.value})")
        await self._persist()
        await self._publish()

    async def logout(self) -> None:
        previous = self._state.user
        self._state = SessionState()
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.storage.delete_document, self.storage_key)
        except Exception as e:
            logger.error(f"Failed to clear persisted session: {e}")
        if previous is not None:
            logger.info(f"Session ended for user {previous.id}")
        await self._publish()

    async def rehydrate(self) -> bool:
        """Restore the session persisted by a previous run.

        Returns:
            True if a session document was restored (it may still be expired)
        """
        loop = asyncio.get_running_loop()
        document = await loop.run_in_executor(None, self.storage.load_document, self.storage_key)
        if not document:
            return False
        try:
            state = SessionState.model_validate(document)
        except ValidationError as e:
            logger.error(f"Discarding unreadable persisted session: {e.error_count()} error(s)")
            return False
        if state.user is None or not state.token:
            return False

        self._state = state
        if self.is_session_valid():
            logger.info(f"Restored session for user {state.user.id}")
        else:
            logger.info(f"Restored session for user {state.user.id} has expired")
        await self._publish()
        return True

    async def _persist(self) -> None:
        document = self._state.model_dump(mode="json")
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.storage.save_document, self.storage_key, document)
        except Exception as e:
            logger.error(f"Failed to persist session: {e}")

    async def _publish(self) -> None:
        user = self._state.user
        await self.event_bus.publish(
            events.TOPIC_SESSION_CHANGED,
            events.create_session_changed_event(
                is_authenticated=self.is_session_valid(),
                user_id=user.id if user else None,
                role=user.role.value if user else None,
            ),
        )
