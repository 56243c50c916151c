from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 100


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class RegistrationInput(BaseModel):
    """Validated registration fields. Built by the service before any storage access."""

    name: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not NAME_MIN_LENGTH <= len(v) <= NAME_MAX_LENGTH:
            raise ValueError(f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters long")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def lowercase_email(cls, v):
        if isinstance(v, str):
            return normalize_email(v)
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not PASSWORD_MIN_LENGTH <= len(v) <= PASSWORD_MAX_LENGTH:
            raise ValueError(
                f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters long"
            )
        return v


def first_error_message(exc: ValidationError) -> str:
    return describe_validation_error(exc.errors()[0])


def describe_validation_error(error: dict) -> str:
    """Turn one pydantic error entry into a message fit for the client."""
    loc = tuple(error.get("loc") or ())
    if loc[:1] == ("body",):
        loc = loc[1:]
    if loc and loc[0] == "email" and error.get("type") != "missing":
        return "Please enter a valid email address"
    ctx_error = (error.get("ctx") or {}).get("error")
    if isinstance(ctx_error, Exception):
        return str(ctx_error)
    field = ".".join(str(part) for part in loc) or "input"
    return f"{field}: {error['msg']}"


class PublicUser(CamelModel):
    id: int
    name: str
    email: str
    email_verified: bool = Field(alias="emailVerified")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class RegisterResult(CamelModel):
    user: PublicUser
    needs_verification: bool = Field(default=True, alias="needsVerification")


class LoginResult(CamelModel):
    user: PublicUser
    token: str
    expires_at: datetime = Field(alias="expiresAt")


class RegisterRequest(CamelModel):
    name: str
    email: str
    password: str

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"name": "Alice", "email": "alice@example.com", "password": "secret1"}]
        },
        populate_by_name=True,
    )


class LoginRequest(CamelModel):
    email: str
    password: str


class VerifyEmailRequest(CamelModel):
    email: str
    code: str


class ResendVerificationRequest(CamelModel):
    email: str


class RegisterResponse(CamelModel):
    success: bool = True
    needs_verification: bool = Field(alias="needsVerification")
    user: PublicUser


class LoginResponse(CamelModel):
    success: bool = True
    user: PublicUser
    token: str
    expires_at: datetime = Field(alias="expiresAt")


class UserResponse(CamelModel):
    success: bool = True
    user: PublicUser


class SuccessResponse(CamelModel):
    success: bool = True


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    message: str
    needs_verification: bool | None = Field(default=None, alias="needsVerification")
