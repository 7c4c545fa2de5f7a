"""Out-of-band delivery of password-reset and invite links."""

from __future__ import annotations

import logging
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class AccountNotifier(Protocol):
    def send_password_reset(self, *, user_id: str, email: str, token: str) -> None: ...

    def send_invite(self, *, invite_id: str, email: str, token: str) -> None: ...


class LoggingNotifier:
    """Records that a message would be sent; the token itself is never logged."""

    def send_password_reset(self, *, user_id: str, email: str, token: str) -> None:
        LOGGER.info("password_reset_requested", extra={"user_id": user_id})

    def send_invite(self, *, invite_id: str, email: str, token: str) -> None:
        LOGGER.info("invite_issued", extra={"invite_id": invite_id})
