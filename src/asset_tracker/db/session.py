"""
asset_tracker.db.session

Async engine and session factory for the principal and audit stores.

Responsibilities:
- Create the async engine from `Settings.database_url`.
- Make SQLite usable by concurrent writers (first-login provisioning races).
- Create the sessionmaker used by `db.stores` and the readiness probe.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from asset_tracker.settings import Settings

# Seconds a writer waits for the SQLite file lock before raising "database is locked".
SQLITE_LOCK_TIMEOUT_SECONDS = 15.0


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _sqlite_on_connect(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        # WAL lets readiness probes and lookups proceed while a provisioning insert commits.
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def create_engine(settings: Settings) -> AsyncEngine:
    url = settings.database_url
    if not _is_sqlite(url):
        return create_async_engine(url, pool_pre_ping=True)

    engine = create_async_engine(
        url,
        connect_args={"timeout": SQLITE_LOCK_TIMEOUT_SECONDS},
    )
    event.listen(engine.sync_engine, "connect", _sqlite_on_connect)
    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Stores map rows to `Principal` after commit, so attributes must stay loaded.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


# --- Module Notes -----------------------------------------------------------
# There is no request-scoped session: the stores and `/readyz` each open a short-lived
# session per operation (see `db.stores`).
