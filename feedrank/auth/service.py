"""
Authentication service backed by the Supabase auth endpoint.
"""

import logging
from typing import Optional

from feedrank.db.supabase_client import SupabaseClient, SupabaseError, get_supabase_client

from .models import AuthenticatedUser, AuthUnavailableError, InvalidTokenError

logger = logging.getLogger(__name__)


class AuthService:
    """
    Resolves access tokens into users.

    Token signatures are checked by Supabase; this service only asks who
    the token belongs to.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client

    @property
    def client(self) -> SupabaseClient:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    async def verify_access_token(self, token: str) -> AuthenticatedUser:
        if not token or not token.strip():
            raise InvalidTokenError("Missing bearer token")

        try:
            user = await self.client.get_user(token.strip())
        except SupabaseError as e:
            logger.warning(f"Token verification failed upstream: {e}")
            raise AuthUnavailableError("Authentication service unavailable") from e

        if not user:
            raise InvalidTokenError("Invalid token or user not found")

        return AuthenticatedUser.from_supabase(user)


_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get the singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
