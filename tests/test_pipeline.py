"""
tests.test_pipeline

End-to-end behaviour of `Authenticator` with in-memory collaborators.
"""

from __future__ import annotations

import pytest

from asset_tracker.auth.audit import AuditSink
from asset_tracker.auth.classifier import DEMO_ADMIN_TOKEN, DEMO_USER_TOKEN
from asset_tracker.auth.errors import (
    AuthError,
    AuthErrorKind,
    RemoteFailure,
    RemoteVerificationError,
)
from asset_tracker.auth.guards import permission_guard, role_guard
from asset_tracker.auth.local_jwt import LocalJWTVerifier
from asset_tracker.auth.models import Principal, RequestMeta, Scheme
from asset_tracker.auth.pipeline import Authenticator
from asset_tracker.auth.protocols import DuplicatePrincipalError

from .helpers import (
    FakeAuditStore,
    FakePrincipalStore,
    FakeRemoteClient,
    firebase_decoded,
    firebase_shaped_token,
    local_token,
)

META = RequestMeta(source_address="10.0.0.7", user_agent="pytest", resource="/v1/users/me")


def _authenticator(settings, principals, audit_store, remote=None) -> Authenticator:
    return Authenticator(
        settings=settings,
        principals=principals,
        remote_client=remote,
        audit=AuditSink(audit_store),
    )


@pytest.mark.asyncio
async def test_missing_token_is_rejected_without_audit(settings, principals, audit_store) -> None:
    auth = _authenticator(settings, principals, audit_store)
    with pytest.raises(AuthError) as exc:
        await auth.authenticate(None, META)
    assert exc.value.kind is AuthErrorKind.missing_credentials
    await auth.audit.drain()
    assert audit_store.events == []


@pytest.mark.asyncio
async def test_demo_token_never_touches_the_store(settings, principals, audit_store) -> None:
    auth = _authenticator(settings, principals, audit_store)

    context = await auth.authenticate(DEMO_ADMIN_TOKEN, META)

    assert context.scheme is Scheme.demo
    assert context.principal.role == "admin"
    assert sum(principals.calls.values()) == 0


@pytest.mark.asyncio
async def test_demo_token_refused_in_prod(settings, principals, audit_store) -> None:
    prod = settings.model_copy(update={"env": "prod"})
    auth = _authenticator(prod, principals, audit_store)
    with pytest.raises(AuthError) as exc:
        await auth.authenticate(DEMO_USER_TOKEN, META)
    assert exc.value.kind is AuthErrorKind.unknown_scheme


@pytest.mark.asyncio
async def test_remote_token_provisions_and_audits(settings, principals, audit_store) -> None:
    remote = FakeRemoteClient(decoded=firebase_decoded("fb-42", "new@example.com"))
    auth = _authenticator(settings, principals, audit_store, remote)

    context = await auth.authenticate(firebase_shaped_token(), META)
    await auth.audit.drain()

    assert context.scheme is Scheme.remote_identity
    assert context.principal.external_id == "fb-42"
    assert principals.calls["insert"] == 1
    [event] = audit_store.events
    assert event.action == "AUTH_SUCCESS"
    assert event.actor_id == "fb-42"
    assert event.source_address == "10.0.0.7"
    assert event.details["method"] == "remote-identity"


@pytest.mark.asyncio
async def test_failed_remote_token_is_not_retried_locally(
    settings, principals, audit_store, monkeypatch
) -> None:
    local_calls = []

    async def _spy(self, envelope):
        local_calls.append(envelope)
        raise AssertionError("local verifier must not run")

    monkeypatch.setattr(LocalJWTVerifier, "verify", _spy)
    remote = FakeRemoteClient(error=RemoteVerificationError(RemoteFailure.invalid_signature))
    auth = _authenticator(settings, principals, audit_store, remote)

    with pytest.raises(AuthError) as exc:
        await auth.authenticate(firebase_shaped_token(), META)

    assert exc.value.kind is AuthErrorKind.remote_invalid
    assert local_calls == []
    assert principals.calls["insert"] == 0


@pytest.mark.asyncio
async def test_provider_outage_is_503(settings, principals, audit_store) -> None:
    remote = FakeRemoteClient(error=RemoteVerificationError(RemoteFailure.service_unavailable))
    auth = _authenticator(settings, principals, audit_store, remote)

    with pytest.raises(AuthError) as exc:
        await auth.authenticate(firebase_shaped_token(), META)
    await auth.audit.drain()

    assert exc.value.status_code == 503
    [event] = audit_store.events
    assert event.action == "AUTH_FAILURE"
    assert event.details == {"reason": "service-unavailable", "scheme": "remote-identity"}


@pytest.mark.asyncio
async def test_unconfigured_provider_rejects_remote_tokens(
    settings, principals, audit_store
) -> None:
    auth = _authenticator(settings, principals, audit_store, remote=None)
    assert auth.scheme_availability()["remote-identity"] is False
    with pytest.raises(AuthError) as exc:
        await auth.authenticate(firebase_shaped_token(), META)
    assert exc.value.kind is AuthErrorKind.remote_unavailable


@pytest.mark.asyncio
async def test_local_token_stamps_last_login(settings, principals, audit_store) -> None:
    stored = principals.add(email="bob@example.com")
    auth = _authenticator(settings, principals, audit_store)

    context = await auth.authenticate(local_token(stored.id), META)

    assert context.scheme is Scheme.local_jwt
    assert context.principal.id == stored.id
    assert context.principal.last_login_at is not None
    assert principals.calls["insert"] == 0


@pytest.mark.asyncio
async def test_audit_outage_does_not_change_decision(settings, principals) -> None:
    failing = FakeAuditStore(fail=True)
    auth = _authenticator(settings, principals, failing)

    context = await auth.authenticate(DEMO_USER_TOKEN, META)
    await auth.audit.drain()

    assert context.principal.role == "user"
    assert failing.events == []


@pytest.mark.asyncio
async def test_authorize_denial_is_audited(settings, principals, audit_store) -> None:
    auth = _authenticator(settings, principals, audit_store)
    context = await auth.authenticate(DEMO_USER_TOKEN, META)

    with pytest.raises(AuthError) as exc:
        auth.authorize(context, [role_guard("admin", "owner")], META)
    await auth.audit.drain()

    assert exc.value.kind is AuthErrorKind.insufficient_role
    assert [e.action for e in audit_store.events] == ["AUTH_SUCCESS", "ACCESS_DENIED"]
    assert audit_store.events[-1].actor_id == "demo-user"


@pytest.mark.asyncio
async def test_authorize_admin_passes_permission_guard(settings, principals, audit_store) -> None:
    auth = _authenticator(settings, principals, audit_store)
    context = await auth.authenticate(DEMO_ADMIN_TOKEN, META)
    assert auth.authorize(context, [permission_guard("reports")], META) is context.principal


class _InvisibleDuplicateStore(FakePrincipalStore):
    """Insert hits a unique constraint but the conflicting row is never visible."""

    async def insert(self, **fields) -> Principal:
        self.calls["insert"] += 1
        raise DuplicatePrincipalError("email")


@pytest.mark.asyncio
async def test_unresolved_duplicate_is_audited_conflict(settings, audit_store) -> None:
    remote = FakeRemoteClient(decoded=firebase_decoded("fb-77", "ghost@example.com"))
    auth = _authenticator(settings, _InvisibleDuplicateStore(), audit_store, remote)

    with pytest.raises(AuthError) as exc:
        await auth.authenticate(firebase_shaped_token(), META)
    await auth.audit.drain()

    assert exc.value.kind is AuthErrorKind.identity_conflict
    assert exc.value.status_code == 409
    [event] = audit_store.events
    assert event.action == "AUTH_FAILURE"
    assert event.details["reason"] == "identity-conflict"
