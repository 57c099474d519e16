"""
tests.test_local_jwt

Local JWT verification: algorithm priority, expiry, staleness and principal lookup.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timedelta

import pytest

from asset_tracker.auth.classifier import classify
from asset_tracker.auth.errors import LocalFailure, LocalVerificationError
from asset_tracker.auth.local_jwt import (
    LocalJwtConfig,
    LocalJWTVerifier,
    decode_with_fallback,
    extract_subject,
    issue_token,
)

from .helpers import SECRET, local_token


def _envelope(token: str):
    return classify(token, demo_enabled=False)


@pytest.mark.parametrize("alg", ["HS256", "HS512"])
def test_decode_with_fallback_reports_winning_algorithm(alg: str) -> None:
    used, claims = decode_with_fallback(local_token("p-1", alg=alg), SECRET)
    assert used == alg
    assert claims["id"] == "p-1"


def test_wrong_secret_is_malformed() -> None:
    with pytest.raises(LocalVerificationError) as exc:
        decode_with_fallback(local_token("p-1", secret="x" * 40), SECRET)
    assert exc.value.failure is LocalFailure.malformed


def test_expired_is_reported_as_expired() -> None:
    token = local_token("p-1", iat=int(time.time()) - 7200, ttl=60)
    with pytest.raises(LocalVerificationError) as exc:
        decode_with_fallback(token, SECRET)
    assert exc.value.failure is LocalFailure.expired


def test_extract_subject_order() -> None:
    assert extract_subject({"userId": "c", "sub": "b", "id": "a"}) == "a"
    assert extract_subject({"userId": "c", "sub": " "}) == "c"
    assert extract_subject({}) is None


def test_issue_token_round_trips_through_verifier_config() -> None:
    cfg = LocalJwtConfig(secret=SECRET, issuer="asset-tracker", alg="HS512")
    subject = uuid.uuid4()
    token = issue_token(cfg=cfg, subject=subject, ttl=timedelta(minutes=5))
    used, claims = decode_with_fallback(token, SECRET)
    assert used == "HS512"
    assert claims["id"] == str(subject)
    assert claims["iss"] == "asset-tracker"


@pytest.mark.asyncio
async def test_verifier_resolves_existing_principal(settings, principals) -> None:
    stored = principals.add(email="bob@example.com")
    verifier = LocalJWTVerifier(settings=settings, principals=principals)

    identity = await verifier.verify(_envelope(local_token(stored.id, alg="HS512")))

    assert identity.local_id == stored.id
    assert identity.algorithm == "HS512"
    assert principals.calls["insert"] == 0


@pytest.mark.asyncio
async def test_verifier_unknown_subject_is_user_not_found(settings, principals) -> None:
    verifier = LocalJWTVerifier(settings=settings, principals=principals)
    with pytest.raises(LocalVerificationError) as exc:
        await verifier.verify(_envelope(local_token(uuid.uuid4())))
    assert exc.value.failure is LocalFailure.user_not_found
    assert principals.calls["insert"] == 0


@pytest.mark.asyncio
async def test_verifier_without_secret_is_misconfigured(settings, principals) -> None:
    verifier = LocalJWTVerifier(
        settings=settings.model_copy(update={"jwt_secret": None}), principals=principals
    )
    with pytest.raises(LocalVerificationError) as exc:
        await verifier.verify(_envelope(local_token(uuid.uuid4())))
    assert exc.value.failure is LocalFailure.service_misconfigured
    assert principals.calls["find_by_id"] == 0


@pytest.mark.asyncio
async def test_password_change_invalidates_older_tokens(settings, principals) -> None:
    stored = principals.add(password_changed_at=datetime.utcnow())
    verifier = LocalJWTVerifier(settings=settings, principals=principals)
    token = local_token(stored.id, iat=int(time.time()) - 600)

    with pytest.raises(LocalVerificationError) as exc:
        await verifier.verify(_envelope(token))
    assert exc.value.failure is LocalFailure.stale_credentials


@pytest.mark.asyncio
async def test_token_issued_after_password_change_is_accepted(settings, principals) -> None:
    stored = principals.add(password_changed_at=datetime.utcnow() - timedelta(hours=1))
    verifier = LocalJWTVerifier(settings=settings, principals=principals)

    identity = await verifier.verify(_envelope(local_token(stored.id)))
    assert identity.principal.id == stored.id
