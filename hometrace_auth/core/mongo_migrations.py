"""Versioned MongoDB index migrations for auth collections."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from pymongo.errors import PyMongoError

from hometrace_auth.core.logging import CORRELATION_ID_CTX

LOGGER = logging.getLogger(__name__)

MigrationFn = Callable[[Any], None]


def _migration_20260301_01_session_indexes(db: Any) -> None:
    db["auth_sessions"].create_index("session_id", unique=True)
    db["auth_sessions"].create_index([("user_id", 1), ("is_revoked", 1)])
    db["auth_sessions"].create_index("refresh_token_hash")


def _migration_20260301_02_user_indexes(db: Any) -> None:
    db["auth_users"].create_index("email", unique=True)
    db["auth_users"].create_index("user_id", unique=True)


MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("20260301_01_session_indexes", _migration_20260301_01_session_indexes),
    ("20260301_02_user_indexes", _migration_20260301_02_user_indexes),
]


def apply_mongo_migrations(db: Any) -> list[str]:
    """Apply pending migrations to ``db`` and return the ids applied.

    A failure is logged and stops the run; already-recorded migrations are
    skipped on the next start.
    """
    applied: list[str] = []
    migration_collection = db["schema_migrations"]
    try:
        migration_collection.create_index("migration_id", unique=True)
        for migration_id, migration_fn in MIGRATIONS:
            if migration_collection.find_one({"migration_id": migration_id}):
                continue
            migration_fn(db)
            migration_collection.insert_one(
                {
                    "migration_id": migration_id,
                    "applied_at": datetime.now(timezone.utc),
                    "correlation_id": CORRELATION_ID_CTX.get(),
                }
            )
            applied.append(migration_id)
    except PyMongoError:
        LOGGER.exception("mongo_migration_failed", extra={"count": len(applied)})
    return applied
