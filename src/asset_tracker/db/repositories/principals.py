"""
asset_tracker.db.repositories.principals

Repository for `PrincipalRow` entities.

Responsibilities:
- Look up principals by local id, external (Firebase) id and email.
- Create and patch principal rows inside the caller's session.
- Map rows into the immutable `Principal` domain type.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asset_tracker.auth.models import Principal
from asset_tracker.db.models import PrincipalRow

# Columns an administrative or self-service edit may touch.
EDITABLE_FIELDS = frozenset(
    {
        "display_name",
        "email",
        "role",
        "permissions",
        "active",
        "external_id",
        "last_login_at",
        "password_changed_at",
    }
)


def to_principal(row: PrincipalRow) -> Principal:
    return Principal(
        id=row.id,
        external_id=row.external_id,
        email=row.email,
        display_name=row.display_name,
        role=row.role,
        permissions=frozenset(row.permissions or ()),
        active=row.active,
        last_login_at=row.last_login_at,
        password_changed_at=row.password_changed_at,
    )


class PrincipalRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, principal_id: uuid.UUID, *, for_update: bool = False
    ) -> PrincipalRow | None:
        return await self._session.get(PrincipalRow, principal_id, with_for_update=for_update)

    async def get_by_external_id(self, external_id: str) -> PrincipalRow | None:
        stmt = select(PrincipalRow).where(PrincipalRow.external_id == external_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_by_email(self, email: str) -> PrincipalRow | None:
        stmt = select(PrincipalRow).where(PrincipalRow.email == email.strip().lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        *,
        external_id: str | None,
        email: str,
        display_name: str,
        role: str,
        permissions: frozenset[str],
        active: bool = True,
        last_login_at: datetime | None = None,
    ) -> PrincipalRow:
        row = PrincipalRow(
            external_id=external_id,
            email=email.strip().lower(),
            display_name=display_name,
            role=role,
            permissions=sorted(permissions),
            active=active,
            last_login_at=last_login_at,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def patch(self, principal_id: uuid.UUID, fields: dict[str, Any]) -> PrincipalRow | None:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"non-editable principal fields: {sorted(unknown)}")
        row = await self.get(principal_id, for_update=True)
        if row is None:
            return None
        for name, value in fields.items():
            if name == "permissions":
                value = sorted(set(value))
            elif name == "email":
                value = str(value).strip().lower()
            setattr(row, name, value)
        row.updated_at = datetime.utcnow()
        await self._session.flush()
        return row

    async def list_all(self, *, limit: int = 100, offset: int = 0) -> list[PrincipalRow]:
        stmt = select(PrincipalRow).order_by(PrincipalRow.created_at).limit(limit).offset(offset)
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# There is deliberately no delete: principals are deactivated with active=False.
