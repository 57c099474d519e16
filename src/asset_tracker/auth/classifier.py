"""
asset_tracker.auth.classifier

Structural classification of bearer tokens into trust schemes.

Responsibilities:
- Recognize the fixed demo sentinels (development mode only).
- Decode (without verifying) the JOSE header and payload of a compact JWT.
- Pick exactly one scheme: demo, remote-identity (Firebase), local-jwt or unknown.

No network, no database, no exceptions: an `unknown` scheme is the failure signal.
"""

from __future__ import annotations

from typing import Any

import jwt

from asset_tracker.auth.models import Scheme, TokenEnvelope

DEMO_ADMIN_TOKEN = "demo-admin-token"
DEMO_USER_TOKEN = "demo-user-token"
DEMO_TOKENS = frozenset({DEMO_ADMIN_TOKEN, DEMO_USER_TOKEN})

# Firebase ID tokens carry this provider-specific claim bag.
REMOTE_CLAIM_BAG = "firebase"
REMOTE_REQUIRED_CLAIMS = ("aud", "auth_time", "exp", "iat")

LOCAL_ALGORITHMS = frozenset({"HS256", "HS512", "RS256"})
LOCAL_SUBJECT_CLAIMS = ("id", "sub", "userId")

_UNVERIFIED_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
}


def decode_unverified(raw: str) -> tuple[dict[str, Any], dict[str, Any]] | None:
    if raw.count(".") != 2:
        return None
    try:
        header = jwt.get_unverified_header(raw)
        claims = jwt.decode(raw, options=_UNVERIFIED_OPTIONS)
    except (jwt.PyJWTError, ValueError, TypeError):
        return None
    if not isinstance(header, dict) or not isinstance(claims, dict):
        return None
    return header, claims


def is_remote_identity(
    header: dict[str, Any], claims: dict[str, Any], *, issuer_marker: str
) -> bool:
    if header.get("alg") != "RS256":
        return False
    issuer = claims.get("iss")
    if not isinstance(issuer, str) or issuer_marker not in issuer:
        return False
    if not isinstance(claims.get(REMOTE_CLAIM_BAG), dict):
        return False
    return all(claims.get(name) is not None for name in REMOTE_REQUIRED_CLAIMS)


def is_local_jwt(header: dict[str, Any], claims: dict[str, Any]) -> bool:
    if header.get("alg") not in LOCAL_ALGORITHMS:
        return False
    if not any(claims.get(name) is not None for name in LOCAL_SUBJECT_CLAIMS):
        return False
    return claims.get("iat") is not None and claims.get("exp") is not None


def classify(
    raw: str,
    *,
    demo_enabled: bool,
    issuer_marker: str = "securetoken.google.com",
) -> TokenEnvelope:
    """
    Classify `raw` by shape only.

    The remote-identity check runs before the local one, so a token shaped like a
    Firebase ID token is never offered to the local verifier.
    """

    if demo_enabled and raw in DEMO_TOKENS:
        return TokenEnvelope(raw=raw, scheme=Scheme.demo)

    decoded = decode_unverified(raw)
    if decoded is None:
        return TokenEnvelope(raw=raw, scheme=Scheme.unknown)
    header, claims = decoded

    if is_remote_identity(header, claims, issuer_marker=issuer_marker):
        scheme = Scheme.remote_identity
    elif is_local_jwt(header, claims):
        scheme = Scheme.local_jwt
    else:
        scheme = Scheme.unknown
    return TokenEnvelope(raw=raw, scheme=scheme, header=header, claims=claims)
