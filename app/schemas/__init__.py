from app.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    LoginResult,
    PublicUser,
    RegisterRequest,
    RegisterResponse,
    RegisterResult,
    RegistrationInput,
    ResendVerificationRequest,
    SuccessResponse,
    UserResponse,
    VerifyEmailRequest,
)

__all__ = [
    "ErrorResponse",
    "LoginRequest",
    "LoginResponse",
    "LoginResult",
    "PublicUser",
    "RegisterRequest",
    "RegisterResponse",
    "RegisterResult",
    "RegistrationInput",
    "ResendVerificationRequest",
    "SuccessResponse",
    "UserResponse",
    "VerifyEmailRequest",
]
