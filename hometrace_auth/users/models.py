"""Pydantic models for the user-record collaborator."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class UserRole(StrEnum):
    """Platform roles; each owns a path prefix of the web app."""

    BUYER = "BUYER"
    REALTOR = "REALTOR"
    ADMIN = "ADMIN"


class UserRecord(BaseModel):
    """Persisted user record referenced by sessions and tokens."""

    user_id: str
    email: str
    role: UserRole
    password_hash: str
    name: str = ""
    created_at: int = 0
    password_changed_at: int = 0
    deleted_at: int | None = None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def public_view(self) -> dict[str, str]:
        """Return user fields safe to expose over the API."""
        return {
            "id": self.user_id,
            "email": self.email,
            "name": self.name,
            "role": str(self.role),
        }
