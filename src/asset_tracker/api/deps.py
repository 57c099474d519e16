"""
asset_tracker.api.deps

Request-time access to the objects `create_app` stores on `app.state`.

Routers depend on these instead of reaching into `app.state` directly, so tests can
swap stores through `create_app(principal_store=..., audit_store=...)`.
"""

from __future__ import annotations

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from asset_tracker.auth.audit import AuditSink
from asset_tracker.auth.protocols import PrincipalStore
from asset_tracker.settings import Settings, get_settings


def settings_dep(request: Request) -> Settings:
    # Settings handed to `create_app`; env settings when the app was built without them.
    return getattr(request.app.state, "settings", None) or get_settings()


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def principal_store(request: Request) -> PrincipalStore:
    return request.app.state.principal_store  # type: ignore[attr-defined]


def audit_sink(request: Request) -> AuditSink:
    return request.app.state.authenticator.audit  # type: ignore[attr-defined]
