from bookstall.shared.domain.session.auth_service import AuthResult, AuthService
from bookstall.shared.domain.session.models import SessionState, UserIdentity, UserRole
from bookstall.shared.domain.session.session_store import SessionStore
from bookstall.shared.domain.session.token import build_identity, decode_token_claims

__all__ = [
    "AuthResult",
    "AuthService",
    "SessionState",
    "UserIdentity",
    "UserRole",
    "SessionStore",
    "build_identity",
    "decode_token_claims",
]
