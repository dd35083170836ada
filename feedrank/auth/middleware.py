"""
FastAPI dependencies that turn a bearer token into an AuthenticatedUser.
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .models import AuthenticatedUser, AuthError, AuthUnavailableError
from .service import AuthService, get_auth_service

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[AuthenticatedUser]:
    """The caller's user, or None when the token is absent or unusable."""
    if credentials is None:
        return None

    try:
        return await auth_service.verify_access_token(credentials.credentials)
    except AuthError:
        return None


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthenticatedUser:
    """
    Resolve the caller or reject the request.

    401 for a missing or rejected token, 503 when the identity provider
    cannot be reached (the token may well be valid).
    """
    if credentials is None:
        raise _unauthorized("Authentication required")

    try:
        return await auth_service.verify_access_token(credentials.credentials)
    except AuthUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except AuthError as e:
        raise _unauthorized(str(e))


async def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[AuthenticatedUser]:
    """For endpoints that serve anonymous callers too."""
    return await get_current_user(credentials, auth_service)
