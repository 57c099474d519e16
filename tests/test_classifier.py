"""
tests.test_classifier

Token classification by shape only.
"""

from __future__ import annotations

import base64

import jwt
import pytest

from asset_tracker.auth.classifier import DEMO_ADMIN_TOKEN, DEMO_USER_TOKEN, classify
from asset_tracker.auth.models import Scheme

from .helpers import SECRET, firebase_shaped_token, local_token


def _seg(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


HS_HEADER = _seg(b'{"alg":"HS256","typ":"JWT"}')
EMPTY_OBJECT = _seg(b"{}")
JSON_ARRAY = _seg(b"[1,2]")
NOT_JSON = _seg(b"not json")


@pytest.mark.parametrize(
    "raw",
    [
        "not-a-jwt",
        "only.two",
        "a.b.c.d",
        "!!!.@@@.###",
        f"{NOT_JSON}.{EMPTY_OBJECT}.sig",
        f"{HS_HEADER}.{JSON_ARRAY}.sig",
    ],
)
def test_garbage_is_unknown(raw: str) -> None:
    assert classify(raw, demo_enabled=True).scheme is Scheme.unknown


def test_firebase_shape_wins_over_local_even_with_secret_configured() -> None:
    envelope = classify(firebase_shaped_token(), demo_enabled=False)
    assert envelope.scheme is Scheme.remote_identity
    assert envelope.header["alg"] == "RS256"
    assert "firebase" in envelope.claims


def test_firebase_shape_missing_claim_bag_is_not_remote() -> None:
    envelope = classify(firebase_shaped_token(firebase=None), demo_enabled=False)
    assert envelope.scheme is not Scheme.remote_identity


def test_foreign_issuer_is_not_remote() -> None:
    token = firebase_shaped_token(iss="https://accounts.example.com/tenant")
    assert classify(token, demo_enabled=False).scheme is not Scheme.remote_identity


@pytest.mark.parametrize("alg", ["HS256", "HS512"])
def test_local_token(alg: str) -> None:
    envelope = classify(local_token("0b5e", alg=alg), demo_enabled=False)
    assert envelope.scheme is Scheme.local_jwt
    assert envelope.claims["id"] == "0b5e"


@pytest.mark.parametrize("claim", ["sub", "userId"])
def test_local_token_alternate_subject_claims(claim: str) -> None:
    token = local_token("abc", claim=claim)
    assert classify(token, demo_enabled=False).scheme is Scheme.local_jwt


def test_local_token_without_subject_is_unknown() -> None:
    token = jwt.encode({"iat": 1, "exp": 2}, SECRET, algorithm="HS256")
    assert classify(token, demo_enabled=False).scheme is Scheme.unknown


@pytest.mark.parametrize("raw", [DEMO_ADMIN_TOKEN, DEMO_USER_TOKEN])
def test_demo_tokens_only_when_enabled(raw: str) -> None:
    assert classify(raw, demo_enabled=True).scheme is Scheme.demo
    assert classify(raw, demo_enabled=False).scheme is Scheme.unknown
