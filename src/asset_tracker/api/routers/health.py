"""
asset_tracker.api.routers.health

Liveness and readiness probes.

`/readyz` fails (503) only when the database is unreachable. A verification scheme
without configuration is reported in `schemes` but does not make the service unready.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.status import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE

from asset_tracker.api.deps import sessionmaker_from_app
from asset_tracker.auth.deps import get_authenticator
from asset_tracker.auth.pipeline import Authenticator
from asset_tracker.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    sessions: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
    authenticator: Authenticator = Depends(get_authenticator),
) -> JSONResponse:
    schemes = authenticator.scheme_availability()
    try:
        async with sessions() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        log.warning("readyz.database_unreachable", error=f"{type(e).__name__}: {e}")
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "schemes": schemes},
        )
    return JSONResponse(status_code=HTTP_200_OK, content={"status": "ready", "schemes": schemes})
