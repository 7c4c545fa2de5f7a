"""Session registry over MongoDB or a JSON file store.

Rows are never deleted: revocation flips ``is_revoked`` once and records when
and why, so the collection doubles as an audit trail.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Protocol

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from hometrace_auth.sessions.models import RevokeReason, Session

LOGGER = logging.getLogger(__name__)


class SessionStoreUnavailable(RuntimeError):
    """Backend could not answer in time or failed; callers must deny."""


class SessionBackend(Protocol):
    """Persistence collaborator used by ``SessionStore``."""

    def insert(self, doc: dict[str, Any]) -> None: ...

    def get(self, session_id: str) -> dict[str, Any] | None: ...

    def find_one_active_by_hash(self, refresh_token_hash: str) -> dict[str, Any] | None: ...

    def find_active_for_user(self, user_id: str) -> list[dict[str, Any]]: ...

    def update_if_active(self, session_id: str, fields: dict[str, Any]) -> bool: ...

    def update_many_active(
        self, user_id: str, fields: dict[str, Any], except_session_id: str | None
    ) -> int: ...


class JsonFileSessionBackend:
    """Single-process backend persisting rows into one JSON file."""

    def __init__(self, runtime_dir: Path) -> None:
        self._path = runtime_dir / "auth_store" / "sessions.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def _read(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SessionStoreUnavailable("Session file is corrupted") from exc
        except OSError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc
        return payload if isinstance(payload, list) else []

    def _write(self, rows: list[dict[str, Any]]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc

    def insert(self, doc: dict[str, Any]) -> None:
        with self._lock:
            rows = self._read()
            rows.append(doc)
            self._write(rows)

    def get(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            return next(
                (row for row in self._read() if row.get("session_id") == session_id), None
            )

    def find_one_active_by_hash(self, refresh_token_hash: str) -> dict[str, Any] | None:
        with self._lock:
            return next(
                (
                    row
                    for row in self._read()
                    if row.get("refresh_token_hash") == refresh_token_hash
                    and not row.get("is_revoked")
                ),
                None,
            )

    def find_active_for_user(self, user_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return [
                row
                for row in self._read()
                if row.get("user_id") == user_id and not row.get("is_revoked")
            ]

    def update_if_active(self, session_id: str, fields: dict[str, Any]) -> bool:
        with self._lock:
            rows = self._read()
            for row in rows:
                if row.get("session_id") == session_id and not row.get("is_revoked"):
                    row.update(fields)
                    self._write(rows)
                    return True
            return False

    def update_many_active(
        self, user_id: str, fields: dict[str, Any], except_session_id: str | None
    ) -> int:
        with self._lock:
            rows = self._read()
            updated = 0
            for row in rows:
                if row.get("user_id") != user_id or row.get("is_revoked"):
                    continue
                if except_session_id and row.get("session_id") == except_session_id:
                    continue
                row.update(fields)
                updated += 1
            if updated:
                self._write(rows)
            return updated


class MongoSessionBackend:
    """MongoDB backend; each revocation is a conditional single-row update."""

    def __init__(self, collection: Any) -> None:
        self._collection = collection

    def insert(self, doc: dict[str, Any]) -> None:
        try:
            self._collection.insert_one(dict(doc))
        except PyMongoError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc

    def get(self, session_id: str) -> dict[str, Any] | None:
        try:
            return self._collection.find_one({"session_id": session_id}, {"_id": 0})
        except PyMongoError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc

    def find_one_active_by_hash(self, refresh_token_hash: str) -> dict[str, Any] | None:
        try:
            return self._collection.find_one(
                {"refresh_token_hash": refresh_token_hash, "is_revoked": False},
                {"_id": 0},
            )
        except PyMongoError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc

    def find_active_for_user(self, user_id: str) -> list[dict[str, Any]]:
        try:
            cursor = self._collection.find(
                {"user_id": user_id, "is_revoked": False}, {"_id": 0}
            ).sort("created_at", DESCENDING)
            return list(cursor)
        except PyMongoError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc

    def update_if_active(self, session_id: str, fields: dict[str, Any]) -> bool:
        try:
            result = self._collection.update_one(
                {"session_id": session_id, "is_revoked": False}, {"$set": fields}
            )
        except PyMongoError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc
        # matched, not modified: a touch within the same second changes nothing
        return result.matched_count > 0

    def update_many_active(
        self, user_id: str, fields: dict[str, Any], except_session_id: str | None
    ) -> int:
        query: dict[str, Any] = {"user_id": user_id, "is_revoked": False}
        if except_session_id:
            query["session_id"] = {"$ne": except_session_id}
        try:
            result = self._collection.update_many(query, {"$set": fields})
        except PyMongoError as exc:
            raise SessionStoreUnavailable(str(exc)) from exc
        return int(result.modified_count)


class SessionStore:
    """Owns the session state machine: active -> revoked, never back."""

    def __init__(
        self, backend: SessionBackend, *, clock: Callable[[], float] = time.time
    ) -> None:
        self._backend = backend
        self._clock = clock

    def create(
        self,
        user_id: str,
        refresh_token_hash: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> Session:
        """Insert a new active session, replacing any active duplicate."""
        duplicate = self._backend.find_one_active_by_hash(refresh_token_hash)
        if duplicate is not None and duplicate.get("user_id") == user_id:
            self.revoke(str(duplicate["session_id"]), RevokeReason.REPLACED)

        now_ts = int(self._clock())
        session = Session(
            session_id=secrets.token_urlsafe(24),
            user_id=user_id,
            refresh_token_hash=refresh_token_hash,
            user_agent=user_agent,
            ip_address=ip_address,
            created_at=now_ts,
            last_used_at=now_ts,
        )
        self._backend.insert(session.model_dump(mode="json"))
        LOGGER.info(
            "session_created",
            extra={"user_id": user_id, "session_id": session.session_id},
        )
        return session

    def find_by_id(self, session_id: str) -> Session | None:
        doc = self._backend.get(session_id)
        return Session.model_validate(doc) if doc else None

    def find_active_by_refresh_hash(self, refresh_token_hash: str) -> Session | None:
        doc = self._backend.find_one_active_by_hash(refresh_token_hash)
        return Session.model_validate(doc) if doc else None

    def list_active(self, user_id: str) -> list[Session]:
        """Return active sessions for a user, newest first."""
        sessions = [
            Session.model_validate(doc) for doc in self._backend.find_active_for_user(user_id)
        ]
        return sorted(sessions, key=lambda item: item.created_at, reverse=True)

    def touch(self, session_id: str) -> bool:
        """Record activity; returns ``False`` when the session is no longer active."""
        return self._backend.update_if_active(
            session_id, {"last_used_at": int(self._clock())}
        )

    def revoke(self, session_id: str, reason: RevokeReason) -> bool:
        """Revoke one session; idempotent, returns whether this call revoked it."""
        revoked = self._backend.update_if_active(session_id, self._revocation(reason))
        if revoked:
            LOGGER.info(
                "session_revoked",
                extra={"session_id": session_id, "reason": str(reason)},
            )
        return revoked

    def revoke_all(
        self,
        user_id: str,
        reason: RevokeReason,
        except_session_id: str | None = None,
    ) -> int:
        """Revoke every active session of a user, optionally keeping one."""
        count = self._backend.update_many_active(
            user_id, self._revocation(reason), except_session_id
        )
        LOGGER.info(
            "sessions_revoked",
            extra={"user_id": user_id, "reason": str(reason), "count": count},
        )
        return count

    def _revocation(self, reason: RevokeReason) -> dict[str, Any]:
        return {
            "is_revoked": True,
            "revoked_at": int(self._clock()),
            "revoked_reason": str(reason),
        }
