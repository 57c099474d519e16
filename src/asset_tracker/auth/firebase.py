"""
asset_tracker.auth.firebase

Firebase (remote identity provider) verification.

Responsibilities:
- Own the process-wide, lazily initialized Firebase Admin app handle.
- Verify Firebase ID tokens with revocation checking, bounded by a timeout.
- Translate SDK exceptions into `RemoteVerificationError` variants at the boundary.

A token classified as remote-identity that fails here is rejected outright; the
caller never retries it against the local JWT verifier.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import exceptions as firebase_exceptions
from google.auth import exceptions as google_auth_exceptions

from asset_tracker.auth.errors import RemoteFailure, RemoteVerificationError
from asset_tracker.auth.models import RemoteIdentity, TokenEnvelope
from asset_tracker.observability.logging import get_logger
from asset_tracker.settings import Settings

log = get_logger(__name__)

APP_NAME = "asset-tracker"


class RemoteIdentityClient(Protocol):
    async def verify(self, token: str, *, check_revoked: bool = True) -> dict[str, Any]: ...


def translate_sdk_error(exc: BaseException) -> RemoteVerificationError:
    """Map a firebase_admin exception onto the closed set of remote failures."""

    # Order matters: expired/revoked are subclasses of InvalidIdTokenError.
    if isinstance(exc, firebase_auth.ExpiredIdTokenError):
        failure = RemoteFailure.expired
    elif isinstance(exc, (firebase_auth.RevokedIdTokenError, firebase_auth.UserDisabledError)):
        failure = RemoteFailure.revoked
    elif isinstance(exc, (firebase_auth.InvalidIdTokenError, ValueError)):
        failure = RemoteFailure.invalid_signature
    elif isinstance(
        exc,
        (
            firebase_auth.CertificateFetchError,
            firebase_exceptions.UnavailableError,
            firebase_exceptions.DeadlineExceededError,
            firebase_exceptions.UnknownError,
            # Certificate download or credential refresh failed; the token was never judged.
            google_auth_exceptions.TransportError,
            google_auth_exceptions.RefreshError,
            google_auth_exceptions.DefaultCredentialsError,
            TimeoutError,
            OSError,
        ),
    ):
        failure = RemoteFailure.service_unavailable
    else:
        failure = RemoteFailure.invalid_signature
    return RemoteVerificationError(failure, f"{type(exc).__name__}: {exc}")


class FirebaseIdentityClient:
    """
    Lazy singleton handle around the Firebase Admin SDK.

    `init()` is idempotent and thread-safe; the first successful call creates the
    named app, later calls return the same handle.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._app: firebase_admin.App | None = None
        self._lock = threading.Lock()

    def _credential(self) -> credentials.Base:
        s = self._settings
        if s.firebase_service_account_path:
            return credentials.Certificate(s.firebase_service_account_path)
        if s.firebase_project_id and s.firebase_client_email and s.firebase_private_key:
            return credentials.Certificate(
                {
                    "type": "service_account",
                    "project_id": s.firebase_project_id,
                    "client_email": s.firebase_client_email,
                    # Keys from env files usually carry escaped newlines.
                    "private_key": s.firebase_private_key.replace("\\n", "\n"),
                    "token_uri": "https://oauth2.googleapis.com/token",
                }
            )
        return credentials.ApplicationDefault()

    def init(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        with self._lock:
            if self._app is not None:
                return self._app
            try:
                app = firebase_admin.get_app(APP_NAME)
            except ValueError:
                options = {}
                if self._settings.firebase_project_id:
                    options["projectId"] = self._settings.firebase_project_id
                app = firebase_admin.initialize_app(self._credential(), options, name=APP_NAME)
                log.info("firebase.initialized", project_id=self._settings.firebase_project_id)
            self._app = app
            return app

    async def verify(self, token: str, *, check_revoked: bool = True) -> dict[str, Any]:
        try:
            app = self.init()
        except (ValueError, OSError, google_auth_exceptions.DefaultCredentialsError) as e:
            raise RemoteVerificationError(
                RemoteFailure.service_unavailable, f"firebase init failed: {e}"
            ) from e
        try:
            # verify_id_token blocks on certificate fetches and the revocation lookup.
            return await asyncio.to_thread(
                firebase_auth.verify_id_token, token, app=app, check_revoked=check_revoked
            )
        except RemoteVerificationError:
            raise
        except Exception as e:  # noqa: BLE001
            raise translate_sdk_error(e) from e


class FirebaseVerifier:
    def __init__(self, *, settings: Settings, client: RemoteIdentityClient | None) -> None:
        self._settings = settings
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None

    async def verify(self, envelope: TokenEnvelope) -> RemoteIdentity:
        if self._client is None:
            raise RemoteVerificationError(
                RemoteFailure.service_unavailable, "remote identity provider not configured"
            )
        try:
            decoded = await asyncio.wait_for(
                self._client.verify(envelope.raw, check_revoked=True),
                timeout=self._settings.firebase_verify_timeout_seconds,
            )
        except TimeoutError as e:
            raise RemoteVerificationError(
                RemoteFailure.service_unavailable, "remote verification timed out"
            ) from e

        project_id = self._settings.firebase_project_id
        if project_id and decoded.get("aud") != project_id:
            raise RemoteVerificationError(
                RemoteFailure.invalid_signature,
                f"audience mismatch: expected {project_id}, got {decoded.get('aud')}",
            )

        external_id = str(decoded.get("uid") or decoded.get("sub") or "").strip()
        if not external_id:
            raise RemoteVerificationError(RemoteFailure.invalid_signature, "token has no subject")

        # Phone-only Firebase accounts have no email; keep the unique column satisfiable.
        claimed_email = str(decoded.get("email") or "").strip().lower()
        email = claimed_email or f"{external_id}@users.invalid"
        display_name = str(decoded.get("name") or "").strip() or email.split("@")[0]
        return RemoteIdentity(
            external_id=external_id,
            email=email,
            display_name=display_name,
            email_verified=bool(claimed_email) and decoded.get("email_verified") is True,
            claims=dict(decoded),
        )


# --- Module Notes -----------------------------------------------------------
# Tests substitute any object implementing `RemoteIdentityClient`; no SDK calls are
# needed to exercise the verifier's error mapping or timeout handling.
