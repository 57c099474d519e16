"""
asset_tracker.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
- Define the transient values flowing through the auth pipeline
  (`TokenEnvelope`, verified identities, `RequestContext`).
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class Role(enum.StrEnum):
    user = "user"
    manager = "manager"
    admin = "admin"
    owner = "owner"


class Permission(enum.StrEnum):
    read = "read"
    create = "create"
    update = "update"
    delete = "delete"
    assign = "assign"
    reports = "reports"


ALL_PERMISSIONS: frozenset[str] = frozenset(p.value for p in Permission)
DEFAULT_PERMISSIONS: frozenset[str] = frozenset({Permission.read.value})


class Scheme(enum.StrEnum):
    demo = "demo"
    remote_identity = "remote-identity"
    local_jwt = "local-jwt"
    unknown = "unknown"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity, as persisted in the principal store.
    """

    id: uuid.UUID
    email: str
    display_name: str
    role: str
    permissions: frozenset[str]
    active: bool = True
    external_id: str | None = None
    last_login_at: datetime | None = None
    password_changed_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


@dataclass(frozen=True, slots=True)
class TokenEnvelope:
    # header/claims are decoded but NOT verified; never trust them for decisions
    # beyond picking a verifier.
    raw: str
    scheme: Scheme
    header: dict[str, Any] = field(default_factory=dict)
    claims: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RemoteIdentity:
    external_id: str
    email: str
    display_name: str
    # Whether the provider has verified ownership of `email`.
    email_verified: bool = False
    claims: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class LocalIdentity:
    local_id: uuid.UUID
    principal: Principal
    algorithm: str
    claims: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RequestMeta:
    """Network metadata recorded in audit events."""

    source_address: str = "unknown"
    user_agent: str = "unknown"
    resource: str = "authentication"


@dataclass(frozen=True, slots=True)
class RequestContext:
    principal: Principal
    scheme: Scheme
    raw_token: str = field(repr=False)


# --- Module Notes -----------------------------------------------------------
# Keep these models free of I/O; stores map persistence rows into `Principal`.
