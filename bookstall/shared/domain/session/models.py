"""Session and user identity types."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """Account role; buyers are called "USER" on the wire."""
    BUYER = "USER"
    SELLER = "SELLER"

    @classmethod
    def parse(cls, value: object, default: Optional["UserRole"] = None) -> Optional["UserRole"]:
        """Lenient parse: case-insensitive, accepts "buyer" and "user"."""
        if isinstance(value, UserRole):
            return value
        if not isinstance(value, str):
            return default
        normalized = value.strip().upper()
        if normalized in ("USER", "BUYER", "READER"):
            return cls.BUYER
        if normalized == "SELLER":
            return cls.SELLER
        return default


class UserIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    display_name: str = ""
    role: UserRole
    token_issued_at: Optional[datetime] = None
    token_expires_at: Optional[datetime] = None
    avatar: Optional[str] = None
    permissions: Tuple[str, ...] = ()

    def is_expired(self, now: datetime) -> bool:
        return self.token_expires_at is not None and self.token_expires_at <= now


class SessionState(BaseModel):
    """Immutable session snapshot; login and logout swap the whole object."""

    model_config = ConfigDict(frozen=True)

    user: Optional[UserIdentity] = None
    token: Optional[str] = Field(default=None, repr=False)

    def is_valid_at(self, now: datetime) -> bool:
        if self.user is None or not self.token:
            return False
        return not self.user.is_expired(now)

    @property
    def is_authenticated(self) -> bool:
        return self.is_valid_at(utc_now())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
