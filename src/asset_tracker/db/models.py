"""
asset_tracker.db.models

Persistence schema for the auth core.

Responsibilities:
- PrincipalRow: locally persisted identity (unique external id and email).
- AuditEventRow: append-only security audit trail.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Index, String, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from asset_tracker.db.base import Base


def _utcnow() -> datetime:
    # Naive UTC timestamps; sqlite drops tzinfo anyway.
    return datetime.utcnow()


class PrincipalRow(Base):
    __tablename__ = "principals"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Firebase uid; NULL for accounts created by an administrator before first login.
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")

    role: Mapped[str] = mapped_column(String(32), nullable=False, default="user", index=True)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    password_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class AuditEventRow(Base):
    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    actor_id: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    resource: Mapped[str] = mapped_column(String(256), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(256), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    source_address: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")

    timestamp: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_audit_actor_timestamp", "actor_id", "timestamp"),)


# --- Module Notes -----------------------------------------------------------
# Uniqueness on external_id is what makes first-login provisioning idempotent under
# concurrency; do not drop it in migrations.
