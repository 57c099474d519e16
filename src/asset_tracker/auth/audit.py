"""
asset_tracker.auth.audit

Best-effort security audit trail.

Responsibilities:
- Define the immutable `AuditEvent` record with schema-stable defaults.
- Write events in the background so audit outages never change an auth decision
  or delay the response.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from asset_tracker.auth.models import Principal, RequestMeta
from asset_tracker.auth.protocols import AuditStore
from asset_tracker.observability.logging import get_logger

log = get_logger(__name__)

UNKNOWN = "unknown"


class AuditAction:
    auth_success = "AUTH_SUCCESS"
    auth_failure = "AUTH_FAILURE"
    access_denied = "ACCESS_DENIED"
    profile_updated = "PROFILE_UPDATED"
    access_updated = "ACCESS_UPDATED"
    user_created = "USER_CREATED"


def actor_id_for(principal: Principal | None, external_id: str | None = None) -> str:
    if principal is not None:
        return principal.external_id or str(principal.id)
    return external_id or UNKNOWN


@dataclass(frozen=True, slots=True)
class AuditEvent:
    actor_id: str
    action: str
    resource: str
    resource_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    source_address: str = UNKNOWN
    user_agent: str = UNKNOWN
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def build(
        cls,
        *,
        action: str,
        meta: RequestMeta,
        principal: Principal | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        return cls(
            actor_id=actor_id_for(principal),
            action=action,
            resource=resource or meta.resource or "authentication",
            resource_id=resource_id,
            details=dict(details or {}),
            source_address=meta.source_address or UNKNOWN,
            user_agent=meta.user_agent or UNKNOWN,
        )


class AuditSink:
    """
    Fire-and-forget recorder.

    `record()` returns immediately; the store write runs as its own task, so it also
    lands when the client disconnects before the response is sent.
    """

    def __init__(self, store: AuditStore | None) -> None:
        self._store = store
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(self, event: AuditEvent) -> None:
        if self._store is None:
            return
        try:
            task = asyncio.get_running_loop().create_task(self._write(event))
        except RuntimeError:
            log.warning("audit.no_event_loop", action=event.action)
            return
        # Strong reference until the write finishes; the loop only keeps weak ones.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, event: AuditEvent) -> None:
        try:
            await self._store.append(event)
        except Exception as e:  # noqa: BLE001
            log.warning(
                "audit.write_failed",
                action=event.action,
                actor_id=event.actor_id,
                error=f"{type(e).__name__}: {e}",
            )

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


# --- Module Notes -----------------------------------------------------------
# Audit records are never read by the auth core; reporting queries rely on every
# column being populated, hence the "unknown" defaults.
