"""
Authentication models and exceptions.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class AuthError(Exception):
    """Base authentication error."""
    pass


class InvalidTokenError(AuthError):
    """Token is invalid, expired or does not resolve to a user."""
    pass


class AuthUnavailableError(AuthError):
    """The identity provider could not be reached."""
    pass


class AuthenticatedUser(BaseModel):
    """Reader resolved from a bearer token."""
    user_id: str = Field(..., description="Supabase auth user id; keys interests, portfolio and history")
    email: Optional[str] = None
    role: Optional[str] = None
    is_anonymous: bool = False

    @classmethod
    def from_supabase(cls, payload: Dict[str, Any]) -> "AuthenticatedUser":
        """Build from a ``/auth/v1/user`` response body."""
        return cls(
            user_id=str(payload["id"]),
            email=payload.get("email"),
            role=payload.get("role"),
            is_anonymous=bool(payload.get("is_anonymous", False)),
        )
