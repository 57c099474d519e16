"""
tests.helpers

In-process fakes and token builders shared by the test modules.

Responsibilities:
- Fake principal/audit stores that count calls and enforce uniqueness.
- A fake Firebase client implementing `RemoteIdentityClient`.
- Helpers minting local JWTs and Firebase-shaped (unsigned) tokens.
"""

from __future__ import annotations

import asyncio
import base64
import json
import time
import uuid
from collections import Counter
from dataclasses import replace
from datetime import datetime
from typing import Any

import jwt

from asset_tracker.auth.audit import AuditEvent
from asset_tracker.auth.errors import RemoteVerificationError
from asset_tracker.auth.models import Principal
from asset_tracker.auth.protocols import DuplicatePrincipalError

SECRET = "test-secret-with-at-least-thirty-two-bytes!!"
PROJECT_ID = "asset-manager-test"


class FakePrincipalStore:
    def __init__(self, *, gate_first_lookups: int = 0) -> None:
        self.rows: dict[uuid.UUID, Principal] = {}
        self.calls: Counter[str] = Counter()
        self._gate = asyncio.Barrier(gate_first_lookups) if gate_first_lookups else None
        self._gated = 0

    def add(self, **fields: Any) -> Principal:
        principal = Principal(
            id=fields.pop("id", uuid.uuid4()),
            email=fields.pop("email", f"{uuid.uuid4().hex[:8]}@example.com"),
            display_name=fields.pop("display_name", "Test User"),
            role=fields.pop("role", "user"),
            permissions=frozenset(fields.pop("permissions", {"read"})),
            **fields,
        )
        self.rows[principal.id] = principal
        return principal

    async def find_by_external_id(self, external_id: str) -> Principal | None:
        self.calls["find_by_external_id"] += 1
        if self._gate is not None and self._gated < self._gate.parties:
            # Hold concurrent first lookups together so they all observe "absent".
            self._gated += 1
            await self._gate.wait()
        return next((p for p in self.rows.values() if p.external_id == external_id), None)

    async def find_by_id(self, principal_id: uuid.UUID | str) -> Principal | None:
        self.calls["find_by_id"] += 1
        try:
            key = principal_id if isinstance(principal_id, uuid.UUID) else uuid.UUID(principal_id)
        except ValueError:
            return None
        return self.rows.get(key)

    async def find_by_email(self, email: str) -> Principal | None:
        self.calls["find_by_email"] += 1
        return next((p for p in self.rows.values() if p.email == email.lower()), None)

    async def insert(
        self,
        *,
        external_id: str | None,
        email: str,
        display_name: str,
        role: str,
        permissions: frozenset[str],
        active: bool = True,
        last_login_at: datetime | None = None,
    ) -> Principal:
        self.calls["insert"] += 1
        await asyncio.sleep(0)
        if external_id is not None and any(
            p.external_id == external_id for p in self.rows.values()
        ):
            raise DuplicatePrincipalError("external_id")
        if any(p.email == email.lower() for p in self.rows.values()):
            raise DuplicatePrincipalError("email")
        return self.add(
            external_id=external_id,
            email=email.lower(),
            display_name=display_name,
            role=role,
            permissions=permissions,
            active=active,
            last_login_at=last_login_at,
        )

    async def update_last_login(self, principal_id: uuid.UUID) -> Principal | None:
        self.calls["update_last_login"] += 1
        return self._patch(principal_id, {"last_login_at": datetime.utcnow()})

    async def update_profile(
        self, principal_id: uuid.UUID, fields: dict[str, Any]
    ) -> Principal | None:
        self.calls["update_profile"] += 1
        return self._patch(principal_id, fields)

    async def list_principals(self, *, limit: int = 100, offset: int = 0) -> list[Principal]:
        self.calls["list_principals"] += 1
        return list(self.rows.values())[offset : offset + limit]

    def _patch(self, principal_id: uuid.UUID, fields: dict[str, Any]) -> Principal | None:
        current = self.rows.get(principal_id)
        if current is None:
            return None
        if "permissions" in fields:
            fields = {**fields, "permissions": frozenset(fields["permissions"])}
        updated = replace(current, **fields)
        self.rows[principal_id] = updated
        return updated


class FakeAuditStore:
    def __init__(self, *, fail: bool = False, delay: float = 0.0) -> None:
        self.events: list[AuditEvent] = []
        self.fail = fail
        self.delay = delay

    async def append(self, event: AuditEvent) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("audit database unreachable")
        self.events.append(event)


class FakeRemoteClient:
    """Stands in for the Firebase Admin SDK."""

    def __init__(
        self,
        *,
        decoded: dict[str, Any] | None = None,
        error: RemoteVerificationError | None = None,
        delay: float = 0.0,
    ) -> None:
        self.decoded = decoded
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, bool]] = []

    async def verify(self, token: str, *, check_revoked: bool = True) -> dict[str, Any]:
        self.calls.append((token, check_revoked))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return dict(self.decoded or {})


def _b64(obj: dict[str, Any]) -> str:
    raw = json.dumps(obj, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def firebase_claims(uid: str = "fb-uid-1", email: str = "ada@example.com") -> dict[str, Any]:
    now = int(time.time())
    return {
        "iss": f"https://securetoken.google.com/{PROJECT_ID}",
        "aud": PROJECT_ID,
        "auth_time": now - 10,
        "user_id": uid,
        "sub": uid,
        "iat": now - 10,
        "exp": now + 3600,
        "email": email,
        "email_verified": True,
        "name": "Ada Lovelace",
        "firebase": {"identities": {"email": [email]}, "sign_in_provider": "password"},
    }


def firebase_shaped_token(**overrides: Any) -> str:
    """RS256-shaped Firebase ID token with a bogus signature."""
    claims = {**firebase_claims(), **overrides}
    header = {"alg": "RS256", "kid": "test-kid", "typ": "JWT"}
    return f"{_b64(header)}.{_b64(claims)}.c2lnbmF0dXJl"


def firebase_decoded(uid: str = "fb-uid-1", email: str = "ada@example.com") -> dict[str, Any]:
    return {**firebase_claims(uid, email), "uid": uid}


def local_token(
    subject: uuid.UUID | str,
    *,
    alg: str = "HS256",
    secret: str = SECRET,
    claim: str = "id",
    iat: int | None = None,
    ttl: int = 3600,
) -> str:
    issued = int(time.time()) if iat is None else iat
    payload = {claim: str(subject), "iat": issued, "exp": issued + ttl}
    return jwt.encode(payload, secret, algorithm=alg)
