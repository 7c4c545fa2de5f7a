from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import MongoClient

from hometrace_auth import __version__
from hometrace_auth.api.http_setup import register_exception_handlers, register_http_middleware
from hometrace_auth.api.runtime_routes import RuntimeRouteDeps, register_runtime_routes
from hometrace_auth.auth.notifier import AccountNotifier, LoggingNotifier
from hometrace_auth.auth.router import create_auth_router
from hometrace_auth.core.config import AppConfig
from hometrace_auth.core.logging import setup_logging
from hometrace_auth.core.mongo_migrations import apply_mongo_migrations
from hometrace_auth.gatekeeper import Gatekeeper, create_gatekeeper_middleware
from hometrace_auth.invites.router import create_invites_router
from hometrace_auth.ratelimit import InMemoryRateLimiter, RateLimitSweeper
from hometrace_auth.sessions import (
    JsonFileSessionBackend,
    MongoSessionBackend,
    SessionManager,
    SessionStore,
)
from hometrace_auth.tokens import TokenCodec
from hometrace_auth.users.repository import UserRepository

load_dotenv()
APP_CONFIG = AppConfig.from_env()
setup_logging(APP_CONFIG.logging.level)
LOGGER = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent


def _connect_mongo(config: AppConfig) -> MongoClient | None:
    if not config.storage.mongodb_uri:
        return None
    timeout_ms = config.storage.lookup_timeout_ms
    return MongoClient(
        config.storage.mongodb_uri,
        serverSelectionTimeoutMS=timeout_ms,
        socketTimeoutMS=timeout_ms,
    )


def create_app(
    config: AppConfig = APP_CONFIG, *, notifier: AccountNotifier | None = None
) -> FastAPI:
    app = FastAPI(title="HomeTrace Auth API", version=__version__)
    runtime_dir = (APP_ROOT / config.storage.runtime_dir).resolve()
    runtime_dir.mkdir(parents=True, exist_ok=True)

    mongo_client = _connect_mongo(config)
    mongo_db: Any = None
    if mongo_client is not None:
        mongo_db = mongo_client[config.storage.mongodb_db]
        apply_mongo_migrations(mongo_db)
        session_backend: Any = MongoSessionBackend(mongo_db["auth_sessions"])
        LOGGER.info("storage_backend_selected", extra={"reason": "mongodb"})
    else:
        session_backend = JsonFileSessionBackend(runtime_dir)
        LOGGER.info("storage_backend_selected", extra={"reason": "json_file"})

    users = UserRepository(runtime_dir, mongo_db=mongo_db)
    users.bootstrap_admin(config.auth.admin_email, config.auth.admin_password)
    codec = TokenCodec.from_config(config.auth)
    sessions = SessionManager(
        store=SessionStore(session_backend),
        codec=codec,
        users=users,
        config=config.auth,
    )
    rate_limiter = InMemoryRateLimiter.from_config(config.rate_limit)
    notifier = notifier or LoggingNotifier()

    app.middleware("http")(
        create_gatekeeper_middleware(
            Gatekeeper(sessions=sessions, rate_limiter=rate_limiter)
        )
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    register_http_middleware(app, config=config, logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)

    app.include_router(
        create_auth_router(
            sessions=sessions,
            users=users,
            codec=codec,
            rate_limiter=rate_limiter,
            notifier=notifier,
            config=config.auth,
        )
    )
    app.include_router(create_invites_router(codec=codec, notifier=notifier))

    def close_storage() -> None:
        if mongo_client is not None:
            mongo_client.close()

    register_runtime_routes(
        app,
        deps=RuntimeRouteDeps(
            sweeper=RateLimitSweeper(
                rate_limiter, interval_seconds=config.rate_limit.sweep_interval_seconds
            ),
            on_shutdown=close_storage,
        ),
    )

    return app


app = create_app()
