import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import get_auth_service, get_current_user, get_session_token
from app.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    PublicUser,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    SuccessResponse,
    UserResponse,
    VerifyEmailRequest,
    describe_validation_error,
)
from app.services.auth_service import AuthService
from app.services.errors import AuthError, AuthErrorKind

router = APIRouter()
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    AuthErrorKind.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AuthErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    AuthErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.UNVERIFIED_EMAIL: status.HTTP_403_FORBIDDEN,
    AuthErrorKind.INVALID_CODE: status.HTTP_400_BAD_REQUEST,
    AuthErrorKind.CODE_EXPIRED: status.HTTP_400_BAD_REQUEST,
    AuthErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorKind.ALREADY_VERIFIED: status.HTTP_409_CONFLICT,
    AuthErrorKind.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    AuthErrorKind.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(exc: AuthError) -> JSONResponse:
    body = ErrorResponse(
        error=exc.kind.value,
        message=exc.message,
        needsVerification=True if exc.needs_verification else None,
    )
    headers = {"Retry-After": "5"} if exc.retryable else None
    return JSONResponse(
        status_code=ERROR_STATUS_CODES[exc.kind],
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return error_response(exc)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = describe_validation_error(errors[0]) if errors else None
    return error_response(AuthError(AuthErrorKind.VALIDATION_ERROR, message))


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


def _clear_session_cookie(response: Response) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register(
    body: RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Create an unverified account and email a verification code."""
    result = service.register(body.name, body.email, body.password)
    return RegisterResponse(user=result.user, needsVerification=result.needs_verification)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login and start a session",
)
def login(
    body: LoginRequest,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Check credentials, issue a session token and set it as an HTTP-only cookie."""
    result = service.login(body.email, body.password)
    _set_session_cookie(response, result.token)
    return LoginResponse(user=result.user, token=result.token, expiresAt=result.expires_at)


@router.post(
    "/verify-email",
    response_model=UserResponse,
    summary="Confirm email with verification code",
)
def verify_email(
    body: VerifyEmailRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    user = service.verify_email(body.email, body.code)
    return UserResponse(user=user)


@router.post(
    "/resend-verification",
    response_model=SuccessResponse,
    summary="Send a fresh verification code",
)
def resend_verification(
    body: ResendVerificationRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    service.resend_verification_code(body.email)
    return SuccessResponse()


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current authenticated user",
)
def me(
    current_user: Annotated[PublicUser, Depends(get_current_user)],
):
    return UserResponse(user=current_user)


@router.post(
    "/logout",
    response_model=SuccessResponse,
    summary="Logout by revoking the session",
)
def logout(
    response: Response,
    token: Annotated[str | None, Depends(get_session_token)],
    service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Delete the session row and clear the cookie.

    The cookie is cleared even when the session row could not be removed.
    """
    try:
        if token:
            service.logout(token)
    except AuthError as exc:
        failure = error_response(exc)
        _clear_session_cookie(failure)
        return failure
    _clear_session_cookie(response)
    return SuccessResponse()
