"""
asset_tracker.api.routers.dev_auth

Local token minting for development and test deployments.

Tokens are issued only for principals that already exist; this route never creates
accounts. Hidden (404) unless `dev_token_route_enabled` is set, and always with env=prod.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.status import HTTP_404_NOT_FOUND

from asset_tracker.api.deps import principal_store, settings_dep
from asset_tracker.auth.errors import AuthError, AuthErrorKind
from asset_tracker.auth.local_jwt import LocalJwtConfig, issue_token
from asset_tracker.auth.protocols import PrincipalStore
from asset_tracker.settings import Settings

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevTokenRequest(BaseModel):
    principal_id: uuid.UUID | None = None
    email: str | None = Field(default=None, max_length=320)
    alg: str = Field(default="HS256", pattern="^HS(256|512)$")
    ttl_minutes: int | None = Field(default=None, ge=1, le=24 * 60)


class DevTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    principal_id: uuid.UUID


@router.post("/token", response_model=DevTokenResponse)
async def mint_dev_token(
    body: DevTokenRequest,
    settings: Settings = Depends(settings_dep),
    principals: PrincipalStore = Depends(principal_store),
) -> DevTokenResponse:
    if not settings.dev_token_route_active:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")
    if not settings.jwt_secret:
        raise AuthError(AuthErrorKind.service_misconfigured, "ASSET_JWT_SECRET is not set")

    principal = None
    if body.principal_id is not None:
        principal = await principals.find_by_id(body.principal_id)
    elif body.email:
        principal = await principals.find_by_email(body.email)
    if principal is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Principal not found")

    ttl = timedelta(minutes=body.ttl_minutes or settings.jwt_default_ttl_minutes)
    cfg = LocalJwtConfig(secret=settings.jwt_secret, issuer=settings.jwt_issuer, alg=body.alg)
    token = issue_token(cfg=cfg, subject=principal.id, ttl=ttl)
    return DevTokenResponse(access_token=token, principal_id=principal.id)
