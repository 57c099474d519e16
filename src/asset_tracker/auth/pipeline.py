"""
asset_tracker.auth.pipeline

The authentication + authorization pipeline.

Responsibilities:
- Drive a request through classify -> verify -> provision -> authorize.
- Convert verifier failures into the shared error taxonomy.
- Emit one structured log line and one audit event per terminal decision.

States: UNAUTHENTICATED -> CLASSIFIED -> VERIFYING -> PROVISIONED -> AUTHORIZED,
with any failed edge ending in REJECTED.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable

from asset_tracker.auth.audit import AuditAction, AuditEvent, AuditSink
from asset_tracker.auth.classifier import classify
from asset_tracker.auth.demo import resolve_demo_principal
from asset_tracker.auth.errors import (
    AuthError,
    AuthErrorKind,
    LocalVerificationError,
    RemoteVerificationError,
    to_auth_error,
)
from asset_tracker.auth.firebase import FirebaseVerifier, RemoteIdentityClient
from asset_tracker.auth.guards import Guard, authorize
from asset_tracker.auth.local_jwt import LocalJWTVerifier
from asset_tracker.auth.models import (
    Principal,
    RequestContext,
    RequestMeta,
    Scheme,
    TokenEnvelope,
)
from asset_tracker.auth.protocols import DuplicatePrincipalError, PrincipalStore
from asset_tracker.auth.provisioning import UserProvisioner
from asset_tracker.observability.logging import get_logger
from asset_tracker.settings import Settings

log = get_logger(__name__)


class PipelineState(enum.StrEnum):
    unauthenticated = "UNAUTHENTICATED"
    classified = "CLASSIFIED"
    verifying = "VERIFYING"
    provisioned = "PROVISIONED"
    authorized = "AUTHORIZED"
    rejected = "REJECTED"


class Authenticator:
    """
    Composition root of the auth core; one instance per process, no per-request state.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        principals: PrincipalStore,
        remote_client: RemoteIdentityClient | None,
        audit: AuditSink,
    ) -> None:
        self._settings = settings
        self._principals = principals
        self._audit = audit
        self._firebase = FirebaseVerifier(settings=settings, client=remote_client)
        self._local = LocalJWTVerifier(settings=settings, principals=principals)
        self._provisioner = UserProvisioner(principals)

    @property
    def audit(self) -> AuditSink:
        return self._audit

    def scheme_availability(self) -> dict[str, bool]:
        return {
            Scheme.remote_identity.value: self._firebase.available,
            Scheme.local_jwt.value: self._settings.local_jwt_available,
            Scheme.demo.value: self._settings.demo_mode,
        }

    async def authenticate(self, raw_token: str | None, meta: RequestMeta) -> RequestContext:
        if not raw_token:
            # Not audited: anonymous probes would flood the trail.
            raise AuthError(AuthErrorKind.missing_credentials)

        envelope = classify(
            raw_token,
            demo_enabled=self._settings.demo_mode,
            issuer_marker=self._settings.firebase_issuer_marker,
        )
        if envelope.scheme is Scheme.unknown:
            raise self._reject(
                AuthError(AuthErrorKind.unknown_scheme, "token matched no known scheme"),
                scheme=envelope.scheme,
                state=PipelineState.unauthenticated,
                meta=meta,
            )

        log.debug(
            "auth.classified", state=PipelineState.classified.value, scheme=envelope.scheme.value
        )
        state = PipelineState.verifying
        try:
            principal = await self._verify(envelope.scheme, envelope)
        except (RemoteVerificationError, LocalVerificationError) as e:
            raise self._reject(
                to_auth_error(e), scheme=envelope.scheme, state=state, meta=meta
            ) from e
        except AuthError as e:
            raise self._reject(e, scheme=envelope.scheme, state=state, meta=meta) from None
        except DuplicatePrincipalError as e:
            conflict = AuthError(
                AuthErrorKind.identity_conflict, f"unresolved duplicate principal {e.field}"
            )
            raise self._reject(conflict, scheme=envelope.scheme, state=state, meta=meta) from e

        context = RequestContext(principal=principal, scheme=envelope.scheme, raw_token=raw_token)
        log.info(
            "auth.authenticated",
            state=PipelineState.provisioned.value,
            scheme=context.scheme.value,
            principal_id=str(principal.id),
        )
        self._audit.record(
            AuditEvent.build(
                action=AuditAction.auth_success,
                meta=meta,
                principal=principal,
                resource="authentication",
                resource_id=principal.external_id or str(principal.id),
                details={"email": principal.email, "method": context.scheme.value},
            )
        )
        return context

    async def _verify(self, scheme: Scheme, envelope: TokenEnvelope) -> Principal:
        if scheme is Scheme.demo:
            principal = resolve_demo_principal(envelope.raw)
            if principal is None:
                raise AuthError(AuthErrorKind.unknown_scheme, "unrecognized demo token")
            return principal

        if scheme is Scheme.remote_identity:
            # No fallback to the local verifier from here, whatever the failure.
            identity = await self._firebase.verify(envelope)
            return await self._provisioner.provision(identity)

        local = await self._local.verify(envelope)
        touched = await self._principals.update_last_login(local.local_id)
        return touched or local.principal

    def authorize(
        self,
        context: RequestContext | None,
        guards: Iterable[Guard],
        meta: RequestMeta,
    ) -> Principal:
        principal = context.principal if context is not None else None
        try:
            allowed = authorize(principal, guards)
        except AuthError as e:
            scheme = context.scheme if context is not None else Scheme.unknown
            raise self._reject(
                e,
                scheme=scheme,
                state=PipelineState.provisioned,
                meta=meta,
                principal=principal,
                action=AuditAction.access_denied,
            ) from None
        log.debug("auth.authorized", state=PipelineState.authorized.value, resource=meta.resource)
        return allowed

    def _reject(
        self,
        error: AuthError,
        *,
        scheme: Scheme,
        state: PipelineState,
        meta: RequestMeta,
        principal: Principal | None = None,
        action: str = AuditAction.auth_failure,
    ) -> AuthError:
        log.info(
            "auth.rejected",
            state=PipelineState.rejected.value,
            from_state=state.value,
            reason=error.kind.reason,
            scheme=scheme.value,
            detail=error.detail,
        )
        self._audit.record(
            AuditEvent.build(
                action=action,
                meta=meta,
                principal=principal,
                details={"reason": error.kind.reason, "scheme": scheme.value},
            )
        )
        return error


# --- Module Notes -----------------------------------------------------------
# Route handlers never see verifier internals: they receive a `RequestContext` or the
# request ends with an `AuthError` rendered by `api.errors`.
