"""
asset_tracker.auth.errors

Error taxonomy for the authentication/authorization pipeline.

Responsibilities:
- Define the closed set of rejection kinds with their HTTP status and public message.
- Define per-verifier failure variants raised at the provider boundary.
- Map verifier variants into the shared taxonomy in exactly one place.
"""

from __future__ import annotations

import enum

from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class AuthErrorKind(enum.Enum):
    # (reason tag, HTTP status, public message)
    missing_credentials = ("missing-credentials", HTTP_401_UNAUTHORIZED, "Authentication required")
    unknown_scheme = ("unknown-scheme", HTTP_401_UNAUTHORIZED, "Invalid or malformed token")
    remote_expired = ("expired", HTTP_401_UNAUTHORIZED, "Token has expired")
    remote_revoked = ("revoked", HTTP_401_UNAUTHORIZED, "Token has been revoked")
    remote_invalid = ("invalid-signature", HTTP_401_UNAUTHORIZED, "Invalid token signature")
    remote_unavailable = (
        "service-unavailable",
        HTTP_503_SERVICE_UNAVAILABLE,
        "Authentication service unavailable",
    )
    local_malformed = ("malformed", HTTP_401_UNAUTHORIZED, "Invalid or malformed token")
    # Values must stay distinct or Enum would alias this member to remote_expired.
    local_expired = ("expired", HTTP_401_UNAUTHORIZED, "Session token has expired")
    stale_credentials = (
        "stale-credentials",
        HTTP_401_UNAUTHORIZED,
        "Password changed since token was issued; please sign in again",
    )
    service_misconfigured = (
        "service-misconfigured",
        HTTP_503_SERVICE_UNAVAILABLE,
        "Authentication is not configured",
    )
    user_not_found = ("user-not-found", HTTP_401_UNAUTHORIZED, "User not found")
    identity_conflict = (
        "identity-conflict",
        HTTP_409_CONFLICT,
        "Email is already linked to a different account",
    )
    unauthenticated = ("unauthenticated", HTTP_401_UNAUTHORIZED, "Authentication required")
    account_disabled = ("account-disabled", HTTP_403_FORBIDDEN, "Account is disabled")
    insufficient_role = ("insufficient-role", HTTP_403_FORBIDDEN, "Insufficient role")
    insufficient_permission = (
        "insufficient-permission",
        HTTP_403_FORBIDDEN,
        "Insufficient permissions",
    )

    def __init__(self, reason: str, status_code: int, message: str) -> None:
        self.reason = reason
        self.status_code = status_code
        self.message = message


class AuthError(Exception):
    """
    Terminal rejection of a request by the auth pipeline.

    `detail` is private diagnostic text; it is only rendered in development mode.
    """

    def __init__(self, kind: AuthErrorKind, detail: str | None = None) -> None:
        super().__init__(detail or kind.message)
        self.kind = kind
        self.detail = detail

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class RemoteFailure(enum.Enum):
    expired = "expired"
    revoked = "revoked"
    invalid_signature = "invalid-signature"
    service_unavailable = "service-unavailable"


class LocalFailure(enum.Enum):
    malformed = "malformed"
    expired = "expired"
    stale_credentials = "stale-credentials"
    service_misconfigured = "service-misconfigured"
    user_not_found = "user-not-found"


class RemoteVerificationError(Exception):
    def __init__(self, failure: RemoteFailure, detail: str | None = None) -> None:
        super().__init__(detail or failure.value)
        self.failure = failure
        self.detail = detail


class LocalVerificationError(Exception):
    def __init__(self, failure: LocalFailure, detail: str | None = None) -> None:
        super().__init__(detail or failure.value)
        self.failure = failure
        self.detail = detail


_REMOTE_KINDS: dict[RemoteFailure, AuthErrorKind] = {
    RemoteFailure.expired: AuthErrorKind.remote_expired,
    RemoteFailure.revoked: AuthErrorKind.remote_revoked,
    RemoteFailure.invalid_signature: AuthErrorKind.remote_invalid,
    RemoteFailure.service_unavailable: AuthErrorKind.remote_unavailable,
}

_LOCAL_KINDS: dict[LocalFailure, AuthErrorKind] = {
    LocalFailure.malformed: AuthErrorKind.local_malformed,
    LocalFailure.expired: AuthErrorKind.local_expired,
    LocalFailure.stale_credentials: AuthErrorKind.stale_credentials,
    LocalFailure.service_misconfigured: AuthErrorKind.service_misconfigured,
    LocalFailure.user_not_found: AuthErrorKind.user_not_found,
}


def to_auth_error(exc: RemoteVerificationError | LocalVerificationError) -> AuthError:
    if isinstance(exc, RemoteVerificationError):
        return AuthError(_REMOTE_KINDS[exc.failure], exc.detail)
    return AuthError(_LOCAL_KINDS[exc.failure], exc.detail)


# --- Module Notes -----------------------------------------------------------
# Call sites never match on provider error strings; they raise a variant above and the
# pipeline converts it with `to_auth_error`.
