"""
asset_tracker.auth.protocols

Store interfaces the auth core depends on.

Responsibilities:
- Describe the principal and audit stores without tying the core to SQLAlchemy.
- Define the duplicate-key signal used for idempotent provisioning.

"Not found" is always `None`, never an exception.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from asset_tracker.auth.models import Principal

if TYPE_CHECKING:
    from asset_tracker.auth.audit import AuditEvent


class DuplicatePrincipalError(Exception):
    """Insert violated a uniqueness constraint (`external_id` or `email`)."""

    def __init__(self, field: str) -> None:
        super().__init__(f"duplicate principal {field}")
        self.field = field


class PrincipalStore(Protocol):
    async def find_by_external_id(self, external_id: str) -> Principal | None: ...

    async def find_by_id(self, principal_id: uuid.UUID | str) -> Principal | None: ...

    async def find_by_email(self, email: str) -> Principal | None: ...

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
    ) -> Principal: ...

    async def update_last_login(self, principal_id: uuid.UUID) -> Principal | None: ...

    async def update_profile(
        self, principal_id: uuid.UUID, fields: dict[str, Any]
    ) -> Principal | None: ...

    async def list_principals(self, *, limit: int = 100, offset: int = 0) -> list[Principal]: ...


class AuditStore(Protocol):
    async def append(self, event: AuditEvent) -> None: ...
