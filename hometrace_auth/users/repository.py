"""User-record collaborator with MongoDB primary and file-store fallback."""

from __future__ import annotations

import json
import time
import uuid
from pathlib import Path
from threading import Lock
from typing import Any

from pymongo.errors import PyMongoError

from hometrace_auth.core.security import hash_password, verify_password
from hometrace_auth.users.models import UserRecord, UserRole


class DuplicateEmailError(ValueError):
    """An account with this email already exists."""


class UserStoreUnavailable(RuntimeError):
    """The user store could not be reached."""


class UserRepository:
    """Stores user records and checks credentials on behalf of the auth core."""

    def __init__(self, runtime_dir: Path, mongo_db: Any | None = None) -> None:
        """Initialize repository storage backends."""
        self._lock = Lock()
        self._mongo_users = None
        self._users_file = runtime_dir / "auth_store" / "users.json"
        if mongo_db is not None:
            self._mongo_users = mongo_db["auth_users"]
        else:
            self._users_file.parent.mkdir(parents=True, exist_ok=True)

    def _read_rows(self) -> list[dict[str, Any]]:
        """Read list payload from JSON file with empty fallback."""
        if not self._users_file.exists():
            return []
        try:
            payload = json.loads(self._users_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        return payload if isinstance(payload, list) else []

    def _write_rows(self, rows: list[dict[str, Any]]) -> None:
        """Persist list payload to JSON file."""
        tmp = self._users_file.with_suffix(self._users_file.suffix + ".tmp")
        tmp.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._users_file)

    def _find_one(self, query: dict[str, Any]) -> UserRecord | None:
        try:
            doc = self._mongo_users.find_one(query, {"_id": 0})  # type: ignore[union-attr]
        except PyMongoError as exc:
            raise UserStoreUnavailable(str(exc)) from exc
        return UserRecord.model_validate(doc) if doc else None

    def get_user_by_email(self, email: str) -> UserRecord | None:
        """Get user by email from storage."""
        key = email.strip().lower()
        if self._mongo_users is not None:
            return self._find_one({"email": key})

        for row in self._read_rows():
            if str(row.get("email", "")).strip().lower() == key:
                return UserRecord.model_validate(row)
        return None

    def get_user(self, user_id: str) -> UserRecord | None:
        """Get user by id from storage."""
        if self._mongo_users is not None:
            return self._find_one({"user_id": user_id})

        for row in self._read_rows():
            if str(row.get("user_id", "")) == user_id:
                return UserRecord.model_validate(row)
        return None

    def upsert_user(self, user: UserRecord) -> None:
        """Create or update user, keyed by normalized email."""
        user = user.model_copy(update={"email": user.email.strip().lower()})
        doc = user.model_dump(mode="json")
        if self._mongo_users is not None:
            try:
                self._mongo_users.update_one({"email": user.email}, {"$set": doc}, upsert=True)
            except PyMongoError as exc:
                raise UserStoreUnavailable(str(exc)) from exc
            return

        with self._lock:
            rows = [
                row
                for row in self._read_rows()
                if str(row.get("email", "")).strip().lower() != user.email
            ]
            rows.append(doc)
            self._write_rows(rows)

    def create_user(
        self, *, email: str, password: str, name: str, role: UserRole
    ) -> UserRecord:
        """Register a new user; raises ``DuplicateEmailError`` on conflict."""
        normalized = email.strip().lower()
        if self.get_user_by_email(normalized) is not None:
            raise DuplicateEmailError(normalized)
        user = UserRecord(
            user_id=uuid.uuid4().hex,
            email=normalized,
            role=role,
            password_hash=hash_password(password),
            name=name.strip(),
            created_at=int(time.time()),
        )
        self.upsert_user(user)
        return user

    def verify_credentials(self, email: str, password: str) -> UserRecord | None:
        """Return the active user matching email and password, else ``None``."""
        user = self.get_user_by_email(email)
        if user is None or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def set_password(self, user_id: str, password: str) -> bool:
        """Replace password hash for a user; return whether the user exists."""
        user = self.get_user(user_id)
        if user is None:
            return False
        self.upsert_user(
            user.model_copy(
                update={
                    "password_hash": hash_password(password),
                    "password_changed_at": int(time.time()),
                }
            )
        )
        return True

    def bootstrap_admin(self, email: str, password: str) -> None:
        """Ensure bootstrap admin user exists from configured values."""
        if not email or not password:
            return
        if self.get_user_by_email(email) is not None:
            return
        self.create_user(email=email, password=password, name="Administrator", role=UserRole.ADMIN)
