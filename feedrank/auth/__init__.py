from .service import AuthService, get_auth_service
from .models import (
    AuthenticatedUser,
    AuthError,
    AuthUnavailableError,
    InvalidTokenError,
)
from .middleware import (
    require_auth,
    optional_auth,
    get_current_user,
)

__all__ = [
    "AuthService",
    "get_auth_service",
    "AuthenticatedUser",
    "AuthError",
    "AuthUnavailableError",
    "InvalidTokenError",
    "require_auth",
    "optional_auth",
    "get_current_user",
]
