"""
asset_tracker.db.init_db

Schema bootstrap for dev/test deployments.

Production schemas are managed with Alembic (`alembic/env.py`); `create_app` only
calls this helper when env is dev or test.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from asset_tracker.db import models  # noqa: F401  # register tables on Base.metadata
from asset_tracker.db.base import Base
from asset_tracker.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    log.info("db.schema_ready", tables=sorted(Base.metadata.tables))
