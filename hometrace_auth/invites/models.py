"""Pydantic request models for invite endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class InviteRequest(BaseModel):
    """Invite issuance payload."""

    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
