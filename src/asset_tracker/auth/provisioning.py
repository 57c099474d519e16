"""
asset_tracker.auth.provisioning

Mapping of verified Firebase identities onto local principals.

Responsibilities:
- Return the principal linked to an external id, stamping `last_login_at`.
- Create the principal on first login, exactly once even under concurrent requests.
- Link accounts that an administrator pre-created by email, once the provider has
  verified that the caller owns the address.

This is the only place the auth core creates principals.
"""

from __future__ import annotations

from datetime import datetime

from asset_tracker.auth.errors import AuthError, AuthErrorKind
from asset_tracker.auth.models import DEFAULT_PERMISSIONS, Principal, RemoteIdentity, Role
from asset_tracker.auth.protocols import DuplicatePrincipalError, PrincipalStore
from asset_tracker.observability.logging import get_logger

log = get_logger(__name__)


class UserProvisioner:
    def __init__(self, principals: PrincipalStore) -> None:
        self._principals = principals

    async def provision(self, identity: RemoteIdentity) -> Principal:
        existing = await self._principals.find_by_external_id(identity.external_id)
        if existing is not None:
            return await self._touch(existing)

        try:
            created = await self._principals.insert(
                external_id=identity.external_id,
                email=identity.email,
                display_name=identity.display_name,
                role=Role.user.value,
                permissions=DEFAULT_PERMISSIONS,
                active=True,
                last_login_at=datetime.utcnow(),
            )
        except DuplicatePrincipalError as e:
            # A concurrent request won the insert, or the email was pre-registered.
            return await self._resolve_duplicate(identity, e)

        log.info(
            "principal.provisioned",
            principal_id=str(created.id),
            external_id=created.external_id,
        )
        return created

    async def _touch(self, principal: Principal) -> Principal:
        updated = await self._principals.update_last_login(principal.id)
        return updated or principal

    async def _resolve_duplicate(
        self, identity: RemoteIdentity, error: DuplicatePrincipalError
    ) -> Principal:
        winner = await self._principals.find_by_external_id(identity.external_id)
        if winner is not None:
            log.info("principal.provision_race_resolved", principal_id=str(winner.id))
            return await self._touch(winner)

        by_email = await self._principals.find_by_email(identity.email)
        if by_email is None:
            # Constraint fired but no row is visible; surface the store failure.
            raise error
        if by_email.external_id is not None:
            raise AuthError(
                AuthErrorKind.identity_conflict,
                f"{identity.email} is linked to another external id",
            )
        if not identity.email_verified:
            # Anyone can sign up with an unowned address; only a verified one claims the row.
            raise AuthError(
                AuthErrorKind.identity_conflict,
                f"{identity.email} is pre-registered but not verified by the provider",
            )

        linked = await self._principals.update_profile(
            by_email.id,
            {"external_id": identity.external_id, "last_login_at": datetime.utcnow()},
        )
        log.info(
            "principal.linked", principal_id=str(by_email.id), external_id=identity.external_id
        )
        return linked or by_email
