"""
asset_tracker.db.repositories.audit

Repository for `AuditEventRow` entities.

Responsibilities:
- Append security audit events.
- Read an actor's trail back, newest first.
"""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from asset_tracker.auth.audit import AuditEvent
from asset_tracker.db.models import AuditEventRow


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, event: AuditEvent) -> AuditEventRow:
        # Append-only: no update/delete paths exist for audit rows.
        row = AuditEventRow(
            actor_id=event.actor_id,
            action=event.action,
            resource=event.resource,
            resource_id=event.resource_id,
            details=event.details,
            source_address=event.source_address,
            user_agent=event.user_agent,
            timestamp=event.timestamp,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_actor(self, actor_id: str, *, limit: int = 200) -> list[AuditEventRow]:
        stmt = (
            select(AuditEventRow)
            .where(AuditEventRow.actor_id == actor_id)
            .order_by(desc(AuditEventRow.timestamp))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Keep the (actor_id, timestamp) index aligned with `list_for_actor`.
