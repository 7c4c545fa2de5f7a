"""Session store and lifecycle manager."""

from hometrace_auth.sessions.manager import SessionManager, token_from_request
from hometrace_auth.sessions.models import (
    IdentityContext,
    LoginResult,
    RefreshResult,
    RevokeReason,
    Session,
    SessionView,
)
from hometrace_auth.sessions.store import (
    JsonFileSessionBackend,
    MongoSessionBackend,
    SessionStore,
    SessionStoreUnavailable,
)

__all__ = [
    "IdentityContext",
    "JsonFileSessionBackend",
    "LoginResult",
    "MongoSessionBackend",
    "RefreshResult",
    "RevokeReason",
    "Session",
    "SessionManager",
    "SessionStore",
    "SessionStoreUnavailable",
    "SessionView",
    "token_from_request",
]
