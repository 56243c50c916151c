"""Error kinds raised by the authentication service.

Callers branch on ``AuthError.kind``; ``message`` is safe to show to the
end user as-is.
"""

from enum import Enum


class AuthErrorKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNVERIFIED_EMAIL = "unverified_email"
    INVALID_CODE = "invalid_code"
    CODE_EXPIRED = "code_expired"
    NOT_FOUND = "not_found"
    ALREADY_VERIFIED = "already_verified"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL_ERROR = "internal_error"


DEFAULT_MESSAGES = {
    AuthErrorKind.VALIDATION_ERROR: "Invalid input",
    AuthErrorKind.CONFLICT: "An account with this email already exists",
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    AuthErrorKind.UNVERIFIED_EMAIL: "Please verify your email address before signing in",
    AuthErrorKind.INVALID_CODE: "Invalid verification code",
    AuthErrorKind.CODE_EXPIRED: "Verification code has expired",
    AuthErrorKind.NOT_FOUND: "No account found for this email",
    AuthErrorKind.ALREADY_VERIFIED: "Email is already verified",
    AuthErrorKind.SERVICE_UNAVAILABLE: "Service temporarily unavailable, please retry",
    AuthErrorKind.INTERNAL_ERROR: "Operation failed",
}


class AuthError(Exception):
    def __init__(
        self,
        kind: AuthErrorKind,
        message: str | None = None,
        needs_verification: bool = False,
    ):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        self.needs_verification = needs_verification
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.kind == AuthErrorKind.SERVICE_UNAVAILABLE

    def __repr__(self) -> str:
        return f"AuthError(kind={self.kind.value!r}, message={self.message!r})"
