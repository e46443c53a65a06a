"""JWT introspection for building the session identity.

The client cannot verify the signature (the server owns the secret), so the
token is only decoded for its claims. When that fails, or the token has
already expired, the session falls back to a degraded identity built from the
login response alone.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

import jwt

from bookstall.shared.core.errors import DecodeError
from bookstall.shared.domain.session.models import UserIdentity, UserRole, utc_now

logger = logging.getLogger(__name__)


def decode_token_claims(token: str) -> Dict[str, Any]:
    """Decode the JWT payload without verifying the signature.

    Raises:
        DecodeError: If the token is not a decodable JWT with an object payload
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise DecodeError(f"Unreadable token: {e}") from e
    if not isinstance(claims, dict):
        raise DecodeError("Token payload is not an object")
    return claims


def _timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _text(*candidates: Any) -> Optional[str]:
    for value in candidates:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def build_identity(
    response: Mapping[str, Any],
    token: str,
    fallback_role: UserRole,
    fallback_email: Optional[str] = None,
    fallback_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[UserIdentity, bool]:
    """Build the user identity for a login or registration response.

    Returns:
        (identity, degraded) where degraded is True when the token could not be
        introspected (or is expired) and only response fields were used

    Raises:
        DecodeError: The response has no id and the token cannot supply one
    """
    now = now or utc_now()
    try:
        claims = decode_token_claims(token)
    except DecodeError as e:
        logger.warning(f"JWT decode failed, using response fields only: {e.message}")
        return _degraded_identity(response, fallback_role), True

    expires_at = _timestamp(claims.get("exp"))
    if expires_at is not None and expires_at <= now:
        logger.warning(f"Token expired at {expires_at.isoformat()}, using response fields only")
        return _degraded_identity(response, fallback_role), True

    user_id = _text(claims.get("id"), claims.get("sub"), response.get("id"))
    if user_id is None:
        raise DecodeError("Login response is missing the user id")

    permissions = claims.get("permissions")
    identity = UserIdentity(
        id=user_id,
        display_name=_text(response.get("name"), claims.get("name"), fallback_name) or "",
        email=_text(response.get("email"), claims.get("email"), fallback_email) or "",
        role=(
            UserRole.parse(response.get("role"))
            or UserRole.parse(claims.get("role"))
            or fallback_role
        ),
        token_issued_at=_timestamp(claims.get("iat")),
        token_expires_at=expires_at,
        avatar=_text(claims.get("avatar")),
        permissions=tuple(str(p) for p in permissions) if isinstance(permissions, list) else (),
    )
    return identity, False


def _degraded_identity(response: Mapping[str, Any], fallback_role: UserRole) -> UserIdentity:
    user_id = _text(response.get("id"))
    if user_id is None:
        raise DecodeError("Login response is missing the user id")
    return UserIdentity(
        id=user_id,
        display_name=_text(response.get("name")) or "",
        email=_text(response.get("email")) or "",
        role=UserRole.parse(response.get("role")) or fallback_role,
    )
