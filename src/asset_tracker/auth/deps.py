"""
asset_tracker.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert the bearer token into a `RequestContext` (cached on `request.state`).
- Enforce role / permission guards via reusable dependency factories.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from asset_tracker.auth.guards import Guard, permission_guard, role_guard
from asset_tracker.auth.models import Principal, RequestContext, RequestMeta
from asset_tracker.auth.pipeline import Authenticator
from asset_tracker.observability.middleware import client_address

_bearer = HTTPBearer(auto_error=False)


def get_authenticator(request: Request) -> Authenticator:
    # Built once on app startup in `asset_tracker.api.app.create_app`.
    return request.app.state.authenticator  # type: ignore[attr-defined]


def request_meta(request: Request) -> RequestMeta:
    route = request.scope.get("route")
    return RequestMeta(
        source_address=client_address(request),
        user_agent=request.headers.get("user-agent") or "unknown",
        resource=getattr(route, "path", None) or request.url.path,
    )


async def get_request_context(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    authenticator: Authenticator = Depends(get_authenticator),
) -> RequestContext:
    cached = getattr(request.state, "auth", None)
    if cached is not None:
        return cached

    raw_token = creds.credentials if creds is not None else None
    context = await authenticator.authenticate(raw_token, request_meta(request))
    request.state.auth = context
    return context


def _guarded(*guards: Guard):
    async def _dep(
        request: Request,
        context: RequestContext = Depends(get_request_context),
        authenticator: Authenticator = Depends(get_authenticator),
    ) -> Principal:
        return authenticator.authorize(context, guards, request_meta(request))

    return _dep


# Authenticated + active, no further guard.
get_principal = _guarded()


def require_roles(*roles: str):
    return _guarded(role_guard(*roles))


def require_permissions(*permissions: str):
    return _guarded(permission_guard(*permissions))


# --- Module Notes -----------------------------------------------------------
# Routes declare guards in `dependencies=[Depends(require_roles(...))]` or take the
# resolved principal as a parameter; both share the per-request cached context.
