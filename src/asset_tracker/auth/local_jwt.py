"""
asset_tracker.auth.local_jwt

Locally signed JWT issuing and verification.

Responsibilities:
- Issue short-lived local tokens (dev token route, service scripts, tests).
- Verify local tokens against the shared secret, trying a fixed algorithm list.
- Resolve the token subject to an existing principal (no auto-provisioning).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from asset_tracker.auth.errors import LocalFailure, LocalVerificationError
from asset_tracker.auth.models import LocalIdentity, Principal, TokenEnvelope
from asset_tracker.auth.protocols import PrincipalStore
from asset_tracker.settings import Settings

# Tried in this order; the first algorithm that verifies wins.
ALGORITHM_PRIORITY: tuple[str, ...] = ("HS256", "HS512", "RS256")

SUBJECT_CLAIMS: tuple[str, ...] = ("id", "sub", "userId")


@dataclass(frozen=True, slots=True)
class LocalJwtConfig:
    secret: str
    issuer: str
    alg: str = "HS256"


def issue_token(
    *,
    cfg: LocalJwtConfig,
    subject: uuid.UUID | str,
    ttl: timedelta = timedelta(hours=1),
    extra_claims: dict[str, Any] | None = None,
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        **(extra_claims or {}),
        "iss": cfg.issuer,
        "id": str(subject),
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_with_fallback(
    token: str,
    key: str,
    algorithms: tuple[str, ...] = ALGORITHM_PRIORITY,
) -> tuple[str, dict[str, Any]]:
    """
    Verify `token` with each algorithm in `algorithms` until one succeeds.

    Pure: no I/O, no logging. Raises `LocalVerificationError(malformed)` when no
    algorithm verifies, or `expired` once a signature verified but `exp` has passed.
    """

    last_error: Exception | None = None
    for alg in algorithms:
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[alg],
                options={"require": ["iat", "exp"], "verify_aud": False},
            )
        except jwt.ExpiredSignatureError as e:
            raise LocalVerificationError(LocalFailure.expired, str(e)) from e
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            last_error = e
            continue
        return alg, claims
    raise LocalVerificationError(
        LocalFailure.malformed, f"no algorithm verified the token: {last_error}"
    )


def extract_subject(claims: dict[str, Any]) -> str | None:
    for name in SUBJECT_CLAIMS:
        value = claims.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def credentials_changed_after(principal: Principal, issued_at: Any) -> bool:
    if principal.password_changed_at is None:
        return False
    changed = principal.password_changed_at
    if changed.tzinfo is None:
        changed = changed.replace(tzinfo=UTC)
    try:
        iat = int(issued_at)
    except (TypeError, ValueError):
        return True
    return int(changed.timestamp()) > iat


class LocalJWTVerifier:
    def __init__(self, *, settings: Settings, principals: PrincipalStore) -> None:
        self._settings = settings
        self._principals = principals

    async def verify(self, envelope: TokenEnvelope) -> LocalIdentity:
        secret = self._settings.jwt_secret
        if not secret:
            raise LocalVerificationError(
                LocalFailure.service_misconfigured, "no local JWT secret configured"
            )

        # Signature checks are CPU-bound and short; they run inline on the request task.
        alg, claims = decode_with_fallback(envelope.raw, secret)

        subject = extract_subject(claims)
        if subject is None:
            raise LocalVerificationError(LocalFailure.malformed, "token has no subject claim")

        principal = await self._principals.find_by_id(subject)
        if principal is None:
            raise LocalVerificationError(LocalFailure.user_not_found, f"no principal {subject}")

        if credentials_changed_after(principal, claims.get("iat")):
            raise LocalVerificationError(
                LocalFailure.stale_credentials, "password changed after token was issued"
            )

        return LocalIdentity(
            local_id=principal.id, principal=principal, algorithm=alg, claims=claims
        )


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by `api/routers/dev_auth.py` and by the test-suite fixtures.
