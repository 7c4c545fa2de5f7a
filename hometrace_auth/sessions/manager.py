"""Session lifecycle: login, refresh, identity resolution and revocation."""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, cast

from hometrace_auth.core.config import AuthConfig
from hometrace_auth.core.security import generate_refresh_token, hash_refresh_token
from hometrace_auth.sessions.models import (
    IdentityContext,
    LoginResult,
    RefreshResult,
    RevokeReason,
    Session,
    SessionView,
)
from hometrace_auth.sessions.store import SessionStore, SessionStoreUnavailable
from hometrace_auth.tokens import (
    AccessClaims,
    AuthError,
    IdentityClaims,
    TokenCodec,
    TokenKind,
    WrongTokenKind,
    extract_bearer_token,
)
from hometrace_auth.users.models import UserRecord
from hometrace_auth.users.repository import UserStoreUnavailable

LOGGER = logging.getLogger(__name__)


class UserLookup(Protocol):
    def get_user(self, user_id: str) -> UserRecord | None: ...


def token_from_request(access_cookie: str | None, authorization: str | None) -> str | None:
    """Pick the access token from the cookie, falling back to a bearer header."""
    return access_cookie or extract_bearer_token(authorization)


class SessionManager:
    """Orchestrates the token codec and session store."""

    def __init__(
        self,
        *,
        store: SessionStore,
        codec: TokenCodec,
        users: UserLookup,
        config: AuthConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._codec = codec
        self._users = users
        self._config = config
        self._clock = clock

    def login(
        self,
        user_id: str,
        email: str,
        role: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> LoginResult:
        """Create a session and mint its tokens.

        The raw refresh token is returned only here; the store keeps its hash.
        """
        refresh_token = generate_refresh_token()
        session = self._store.create(
            user_id, hash_refresh_token(refresh_token), user_agent, ip_address
        )
        access_token = self._issue_access(user_id, email, str(role), session.session_id)
        return LoginResult(
            access_token=access_token,
            refresh_token=refresh_token,
            session_id=session.session_id,
        )

    def refresh(self, refresh_token: str | None) -> RefreshResult | None:
        """Mint a new access token for the live session owning ``refresh_token``.

        Neither the refresh token nor the session id rotates. ``None`` tells
        the caller to clear cookies and force a new login.
        """
        if not refresh_token:
            return None
        try:
            session = self._store.find_active_by_refresh_hash(hash_refresh_token(refresh_token))
            if session is None:
                return None
            if self._is_stale(session):
                self._store.revoke(session.session_id, RevokeReason.EXPIRED)
                return None
            user = self._users.get_user(session.user_id)
            if user is None or not user.is_active:
                return None
            # a revoke racing this refresh makes the touch miss
            if not self._store.touch(session.session_id):
                return None
        except SessionStoreUnavailable:
            LOGGER.warning("session_store_unavailable", extra={"action": "refresh"})
            return None
        except UserStoreUnavailable:
            LOGGER.warning("user_store_unavailable", extra={"action": "refresh"})
            return None

        access_token = self._issue_access(
            user.user_id, user.email, str(user.role), session.session_id
        )
        return RefreshResult(
            access_token=access_token,
            session_id=session.session_id,
            user=user.public_view(),
        )

    def get_session_user(self, token: str | None) -> IdentityContext | None:
        """Resolve an access token to identity, rechecking session liveness.

        A signature stays valid for the whole access-token lifetime even after
        its session is revoked, so every call consults the store.
        """
        if not token:
            return None
        try:
            claims = cast(AccessClaims, self._codec.verify(TokenKind.ACCESS, token))
        except WrongTokenKind:
            return self._stateless_identity(token)
        except AuthError:
            return None

        try:
            session = self._store.find_by_id(claims.session_id)
            if session is None or session.is_revoked or session.user_id != claims.user_id:
                return None
            if self._is_stale(session):
                self._store.revoke(session.session_id, RevokeReason.EXPIRED)
                return None
            if not self._store.touch(session.session_id):
                return None
        except SessionStoreUnavailable:
            LOGGER.warning(
                "session_store_unavailable",
                extra={"action": "get_session_user", "session_id": claims.session_id},
            )
            return None

        return IdentityContext(
            user_id=claims.user_id,
            email=claims.email,
            role=claims.role,
            session_id=claims.session_id,
        )

    def logout(self, access_token: str | None, refresh_token: str | None) -> bool:
        """Revoke the session behind either credential.

        The access token only needs a valid signature here; a session that
        is already stale or revoked is simply left as it is.
        """
        session_id = None
        if access_token:
            try:
                claims = cast(AccessClaims, self._codec.verify(TokenKind.ACCESS, access_token))
                session_id = claims.session_id
            except AuthError:
                session_id = None
        try:
            if session_id is None and refresh_token:
                session = self._store.find_active_by_refresh_hash(
                    hash_refresh_token(refresh_token)
                )
                session_id = session.session_id if session else None
            if session_id is None:
                return False
            return self._store.revoke(session_id, RevokeReason.LOGOUT)
        except SessionStoreUnavailable:
            LOGGER.warning("session_store_unavailable", extra={"action": "logout"})
            return False

    def find_session(self, session_id: str) -> Session | None:
        return self._store.find_by_id(session_id)

    def list_sessions(self, user_id: str, current_session_id: str | None) -> list[SessionView]:
        """Active sessions of a user with the caller's own session flagged."""
        return [
            SessionView(
                id=session.session_id,
                created_at=session.created_at,
                last_used_at=session.last_used_at,
                user_agent=session.user_agent,
                ip_address=session.ip_address,
                is_current=session.session_id == current_session_id,
            )
            for session in self._store.list_active(user_id)
        ]

    def revoke_session(
        self, session_id: str, reason: RevokeReason = RevokeReason.MANUAL_REVOKE
    ) -> bool:
        return self._store.revoke(session_id, reason)

    def revoke_all_sessions(
        self,
        user_id: str,
        reason: RevokeReason = RevokeReason.LOGOUT_ALL_DEVICES,
        except_session_id: str | None = None,
    ) -> int:
        return self._store.revoke_all(user_id, reason, except_session_id)

    def issue_identity_token(self, user_id: str, email: str, role: str) -> str:
        """Mint a stateless identity token for non-browser clients."""
        return self._codec.issue(
            TokenKind.IDENTITY, IdentityClaims(user_id=user_id, email=email, role=str(role))
        )

    def _stateless_identity(self, token: str) -> IdentityContext | None:
        if not self._config.stateless_identity_enabled:
            return None
        try:
            claims = cast(IdentityClaims, self._codec.verify(TokenKind.IDENTITY, token))
        except AuthError:
            return None
        return IdentityContext(user_id=claims.user_id, email=claims.email, role=claims.role)

    def _issue_access(self, user_id: str, email: str, role: str, session_id: str) -> str:
        return self._codec.issue(
            TokenKind.ACCESS,
            AccessClaims(user_id=user_id, email=email, role=role, session_id=session_id),
        )

    def _is_stale(self, session: Session) -> bool:
        now_ts = int(self._clock())
        if now_ts - session.created_at > self._config.refresh_token_ttl_seconds:
            return True
        return now_ts - session.last_used_at > self._config.session_inactivity_seconds
