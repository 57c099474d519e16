"""
asset_tracker.db.stores

SQLAlchemy-backed implementations of the auth core's store protocols.

Responsibilities:
- `SqlPrincipalStore`: one short transaction per operation, duplicate-key violations
  surfaced as `DuplicatePrincipalError`.
- `SqlAuditStore`: append audit events in their own transaction.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from asset_tracker.auth.audit import AuditEvent
from asset_tracker.auth.models import Principal
from asset_tracker.auth.protocols import DuplicatePrincipalError
from asset_tracker.db.repositories.audit import AuditRepo
from asset_tracker.db.repositories.principals import PrincipalRepo, to_principal


def _duplicate_field(error: IntegrityError) -> str:
    message = str(error.orig).lower()
    for name in ("external_id", "email"):
        if name in message:
            return name
    return "unknown"


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SqlPrincipalStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def find_by_external_id(self, external_id: str) -> Principal | None:
        async with self._sessions() as session:
            row = await PrincipalRepo(session).get_by_external_id(external_id)
            return to_principal(row) if row is not None else None

    async def find_by_id(self, principal_id: uuid.UUID | str) -> Principal | None:
        key = _as_uuid(principal_id)
        if key is None:
            return None
        async with self._sessions() as session:
            row = await PrincipalRepo(session).get(key)
            return to_principal(row) if row is not None else None

    async def find_by_email(self, email: str) -> Principal | None:
        async with self._sessions() as session:
            row = await PrincipalRepo(session).get_by_email(email)
            return to_principal(row) if row is not None else None

    async def insert(
        self,
        *,
        external_id: str | None,
        email: str,
        display_name: str,
        role: str,
        permissions: frozenset[str],
        active: bool = True,
        last_login_at: datetime | None = None,
    ) -> Principal:
        async with self._sessions() as session:
            try:
                row = await PrincipalRepo(session).create(
                    external_id=external_id,
                    email=email,
                    display_name=display_name,
                    role=role,
                    permissions=permissions,
                    active=active,
                    last_login_at=last_login_at,
                )
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicatePrincipalError(_duplicate_field(e)) from e
            return to_principal(row)

    async def update_last_login(self, principal_id: uuid.UUID) -> Principal | None:
        return await self.update_profile(principal_id, {"last_login_at": datetime.utcnow()})

    async def update_profile(
        self, principal_id: uuid.UUID, fields: dict[str, Any]
    ) -> Principal | None:
        async with self._sessions() as session:
            try:
                row = await PrincipalRepo(session).patch(principal_id, fields)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicatePrincipalError(_duplicate_field(e)) from e
            return to_principal(row) if row is not None else None

    async def list_principals(self, *, limit: int = 100, offset: int = 0) -> list[Principal]:
        async with self._sessions() as session:
            rows = await PrincipalRepo(session).list_all(limit=limit, offset=offset)
            return [to_principal(r) for r in rows]


class SqlAuditStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def append(self, event: AuditEvent) -> None:
        async with self._sessions() as session:
            await AuditRepo(session).add(event)
            await session.commit()


# --- Module Notes -----------------------------------------------------------
# Principal provisioning relies on the unique constraints of `principals`; the store
# never takes an in-process lock.
