from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.models import Database
from app.schemas.auth import PublicUser
from app.services.auth_service import AuthService

security = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    database = request.app.state.database
    if database is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not initialized",
        )
    return database


def get_auth_service(request: Request) -> AuthService:
    service = request.app.state.auth_service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth service is not initialized",
        )
    return service


def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Session token from the auth cookie, falling back to a bearer header."""
    cookie_token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    if credentials:
        return credentials.credentials
    return None


def get_current_user_optional(
    token: Annotated[str | None, Depends(get_session_token)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> PublicUser | None:
    if not token:
        return None
    return service.get_user_from_token(token)


def get_current_user(
    user: Annotated[PublicUser | None, Depends(get_current_user_optional)],
) -> PublicUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
