"""
Supabase client for reading the news and user profile tables from Python.

Talks to the PostgREST endpoint (``/rest/v1``) for table reads and to the
GoTrue endpoint (``/auth/v1``) to resolve access tokens into users.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from feedrank.config import settings

logger = logging.getLogger(__name__)


class SupabaseError(Exception):
    """Base exception for Supabase errors."""
    pass


class SupabaseAuthError(SupabaseError):
    """The API key was rejected."""
    pass


class SupabaseQueryError(SupabaseError):
    """Error executing a table query."""
    pass


class SupabaseClient:
    """
    Async client for the Supabase REST API.

    Example usage:
        client = SupabaseClient(
            url="https://your-project.supabase.co",
            api_key="service-role-key",
        )

        rows = await client.select(
            "user_interests",
            filters={"user_id": "eq.123"},
            order="priority_level.desc",
        )

        user = await client.get_user(access_token)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.supabase_url
        self.api_key = api_key or settings.supabase_key
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._transport = transport

        if not self.url:
            raise SupabaseError("SUPABASE_URL is required")
        if not self.api_key:
            raise SupabaseError("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY is required")

        # Remove trailing slash if present
        self.url = self.url.rstrip("/")

        self._client: Optional[httpx.AsyncClient] = None

    @property
    def headers(self) -> Dict[str, str]:
        """Get headers for PostgREST requests."""
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table name (e.g., "news_articles")
            columns: PostgREST select expression
            filters: Column -> operator expression (e.g., {"is_active": "eq.true"})
            order: Order expression (e.g., "published_at.desc")
            limit: Maximum number of rows
            offset: Rows to skip

        Returns:
            The matching rows

        Raises:
            SupabaseAuthError: If the API key is rejected
            SupabaseQueryError: If the query fails
        """
        params: Dict[str, Any] = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        if offset:
            params["offset"] = offset

        client = await self._get_client()

        try:
            response = await client.get(f"{self.url}/rest/v1/{table}", params=params)

            if response.status_code in (401, 403):
                raise SupabaseAuthError("Invalid or missing Supabase API key")

            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            raise SupabaseQueryError(f"Query on {table} failed: {e.response.text}") from e
        except httpx.RequestError as e:
            raise SupabaseQueryError(f"Request failed: {str(e)}") from e
        except ValueError as e:
            raise SupabaseQueryError(f"Invalid JSON from {table}: {str(e)}") from e

        if not isinstance(data, list):
            raise SupabaseQueryError(f"Unexpected response shape from {table}")
        return data

    async def get_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """
        Resolve an access token into the Supabase user record.

        Returns:
            The user dict, or None if the token is invalid or expired

        Raises:
            SupabaseError: If the auth endpoint cannot be reached
        """
        client = await self._get_client()

        try:
            response = await client.get(
                f"{self.url}/auth/v1/user",
                headers={"Authorization": f"Bearer {access_token}"},
            )

            if response.status_code in (401, 403):
                return None

            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            raise SupabaseError(f"User lookup failed: {e.response.text}") from e
        except httpx.RequestError as e:
            raise SupabaseError(f"Request failed: {str(e)}") from e
        except ValueError as e:
            raise SupabaseError(f"Invalid JSON from auth endpoint: {str(e)}") from e

        if not isinstance(data, dict) or not data.get("id"):
            logger.debug("Auth endpoint returned no user id")
            return None
        return data


# Singleton instance
_supabase_client: Optional[SupabaseClient] = None


def get_supabase_client() -> SupabaseClient:
    """Get the singleton Supabase client instance."""
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = SupabaseClient()
    return _supabase_client


async def close_supabase_client() -> None:
    """Close and drop the singleton, if one was created."""
    global _supabase_client
    if _supabase_client is not None:
        await _supabase_client.close()
        _supabase_client = None
