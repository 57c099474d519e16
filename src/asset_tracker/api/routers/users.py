"""
asset_tracker.api.routers.users

Profile and user-administration endpoints.

Responsibilities:
- Current-user profile read/update (`/v1/users/me`).
- Role lookup by Firebase uid for the frontend.
- Pre-registering, listing and changing role/permissions/active flags (admins, owners).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)

from asset_tracker.api.deps import audit_sink, principal_store
from asset_tracker.auth.audit import AuditAction, AuditEvent, AuditSink
from asset_tracker.auth.deps import (
    get_principal,
    get_request_context,
    request_meta,
    require_permissions,
    require_roles,
)
from asset_tracker.auth.models import Permission, Principal, RequestContext, Role, Scheme
from asset_tracker.auth.protocols import DuplicatePrincipalError, PrincipalStore

router = APIRouter(prefix="/v1/users", tags=["users"])


class PrincipalOut(BaseModel):
    id: uuid.UUID
    external_id: str | None
    email: str
    display_name: str
    role: str
    permissions: list[str]
    active: bool
    last_login_at: datetime | None

    @classmethod
    def from_principal(cls, principal: Principal) -> PrincipalOut:
        return cls(
            id=principal.id,
            external_id=principal.external_id,
            email=principal.email,
            display_name=principal.display_name,
            role=principal.role,
            permissions=sorted(principal.permissions),
            active=principal.active,
            last_login_at=principal.last_login_at,
        )


class UserEnvelope(BaseModel):
    success: bool = True
    data: dict[str, PrincipalOut]


class UserListEnvelope(BaseModel):
    success: bool = True
    data: list[PrincipalOut]


class RoleLookup(BaseModel):
    success: bool = True
    role: str
    message: str | None = None


class ProfileUpdate(BaseModel):
    display_name: str = Field(min_length=1, max_length=256)


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    display_name: str = Field(min_length=1, max_length=256)
    role: Role = Role.user
    permissions: list[Permission] = Field(default_factory=lambda: [Permission.read])


class AccessUpdate(BaseModel):
    role: Role | None = None
    permissions: list[Permission] | None = None
    active: bool | None = None


@router.get("/me", response_model=UserEnvelope)
async def get_me(principal: Principal = Depends(get_principal)) -> UserEnvelope:
    return UserEnvelope(data={"user": PrincipalOut.from_principal(principal)})


@router.put("/me", response_model=UserEnvelope)
async def update_me(
    request: Request,
    body: ProfileUpdate,
    principal: Principal = Depends(get_principal),
    context: RequestContext = Depends(get_request_context),
    principals: PrincipalStore = Depends(principal_store),
    audit: AuditSink = Depends(audit_sink),
) -> UserEnvelope:
    if context.scheme is Scheme.demo:
        # Demo principals are synthetic and have no row to update.
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST, detail="Demo profiles are read-only"
        )

    updated = await principals.update_profile(principal.id, {"display_name": body.display_name})
    if updated is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User profile not found")
    audit.record(
        AuditEvent.build(
            action=AuditAction.profile_updated,
            meta=request_meta(request),
            principal=principal,
            resource="users",
            resource_id=str(principal.id),
            details={"fields": ["display_name"]},
        )
    )
    return UserEnvelope(data={"user": PrincipalOut.from_principal(updated)})


@router.get("", response_model=UserListEnvelope)
async def list_users(
    limit: int = 100,
    offset: int = 0,
    _: Principal = Depends(require_permissions(Permission.read)),
    principals: PrincipalStore = Depends(principal_store),
) -> UserListEnvelope:
    rows = await principals.list_principals(limit=min(max(limit, 1), 500), offset=max(offset, 0))
    return UserListEnvelope(data=[PrincipalOut.from_principal(p) for p in rows])


@router.post("", response_model=UserEnvelope, status_code=HTTP_201_CREATED)
async def create_user(
    request: Request,
    body: UserCreate,
    actor: Principal = Depends(require_roles(Role.admin, Role.owner)),
    principals: PrincipalStore = Depends(principal_store),
    audit: AuditSink = Depends(audit_sink),
) -> UserEnvelope:
    """
    Pre-register an account. The first Firebase login with this (verified) email is
    linked to it and keeps the role and permissions set here.
    """

    if body.role == Role.owner and actor.role != Role.owner:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Only owners can grant owner")

    try:
        created = await principals.insert(
            external_id=None,
            email=body.email,
            display_name=body.display_name,
            role=str(body.role),
            permissions=frozenset(str(p) for p in body.permissions),
            active=True,
        )
    except DuplicatePrincipalError as e:
        raise HTTPException(
            status_code=HTTP_409_CONFLICT, detail="User with this email already exists"
        ) from e

    audit.record(
        AuditEvent.build(
            action=AuditAction.user_created,
            meta=request_meta(request),
            principal=actor,
            resource="users",
            resource_id=str(created.id),
            details={"email": created.email, "role": created.role},
        )
    )
    return UserEnvelope(data={"user": PrincipalOut.from_principal(created)})


@router.get("/{external_id}/role", response_model=RoleLookup)
async def get_role(
    external_id: str,
    _: Principal = Depends(get_principal),
    principals: PrincipalStore = Depends(principal_store),
) -> RoleLookup:
    found = await principals.find_by_external_id(external_id)
    if found is None:
        # The frontend treats unknown accounts as plain users until first login.
        return RoleLookup(role=Role.user.value, message="User not found, using default role")
    return RoleLookup(role=found.role)


@router.patch("/{principal_id}/access", response_model=UserEnvelope)
async def update_access(
    request: Request,
    principal_id: uuid.UUID,
    body: AccessUpdate,
    actor: Principal = Depends(require_roles(Role.admin, Role.owner)),
    principals: PrincipalStore = Depends(principal_store),
    audit: AuditSink = Depends(audit_sink),
) -> UserEnvelope:
    if principal_id == actor.id:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST, detail="Cannot change your own role or access"
        )
    if body.role == Role.owner and actor.role != Role.owner:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Only owners can grant owner")

    fields = body.model_dump(exclude_none=True)
    if "role" in fields:
        fields["role"] = str(fields["role"])
    if "permissions" in fields:
        fields["permissions"] = [str(p) for p in fields["permissions"]]
    if not fields:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Nothing to update")

    updated = await principals.update_profile(principal_id, fields)
    if updated is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")
    audit.record(
        AuditEvent.build(
            action=AuditAction.access_updated,
            meta=request_meta(request),
            principal=actor,
            resource="users",
            resource_id=str(principal_id),
            details={"changes": fields},
        )
    )
    return UserEnvelope(data={"user": PrincipalOut.from_principal(updated)})
