"""
asset_tracker.auth.guards

Role and permission predicates over a resolved principal.

Responsibilities:
- Reject missing principals as unauthenticated (401), distinct from authz failures (403).
- Reject deactivated principals before any guard is evaluated.
- Evaluate `RoleGuard` / `PermissionGuard` in declaration order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from asset_tracker.auth.errors import AuthError, AuthErrorKind
from asset_tracker.auth.models import Principal


class Guard(Protocol):
    def check(self, principal: Principal) -> None: ...


@dataclass(frozen=True, slots=True)
class RoleGuard:
    allowed: frozenset[str]

    def check(self, principal: Principal) -> None:
        if principal.role not in self.allowed:
            raise AuthError(
                AuthErrorKind.insufficient_role,
                f"role {principal.role!r} not in {sorted(self.allowed)}",
            )


@dataclass(frozen=True, slots=True)
class PermissionGuard:
    required: frozenset[str]

    def check(self, principal: Principal) -> None:
        # Admins hold every capability implicitly.
        if principal.is_admin:
            return
        missing = self.required - principal.permissions
        if missing:
            raise AuthError(
                AuthErrorKind.insufficient_permission, f"missing permissions {sorted(missing)}"
            )


def role_guard(*roles: str) -> RoleGuard:
    return RoleGuard(frozenset(str(r) for r in roles))


def permission_guard(*permissions: str) -> PermissionGuard:
    return PermissionGuard(frozenset(str(p) for p in permissions))


def ensure_active(principal: Principal) -> None:
    if not principal.active:
        raise AuthError(AuthErrorKind.account_disabled, f"principal {principal.id} is inactive")


def authorize(principal: Principal | None, guards: Iterable[Guard] = ()) -> Principal:
    if principal is None:
        raise AuthError(AuthErrorKind.unauthenticated)
    ensure_active(principal)
    for guard in guards:
        guard.check(principal)
    return principal
