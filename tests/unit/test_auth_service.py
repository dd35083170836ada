from unittest.mock import AsyncMock, MagicMock

import pytest

from feedrank.auth import AuthService, AuthUnavailableError, InvalidTokenError
from feedrank.db.supabase_client import SupabaseQueryError


@pytest.fixture
def supabase():
    client = MagicMock()
    client.get_user = AsyncMock(return_value={"id": "user-1", "email": "reader@example.com", "role": "authenticated"})
    return client


@pytest.mark.asyncio
async def test_token_resolves_to_user(supabase):
    user = await AuthService(supabase).verify_access_token("  token  ")

    assert user.user_id == "user-1"
    assert user.email == "reader@example.com"
    supabase.get_user.assert_awaited_once_with("token")


@pytest.mark.asyncio
async def test_unknown_token_rejected(supabase):
    supabase.get_user.return_value = None

    with pytest.raises(InvalidTokenError):
        await AuthService(supabase).verify_access_token("token")


@pytest.mark.asyncio
async def test_blank_token_rejected(supabase):
    with pytest.raises(InvalidTokenError):
        await AuthService(supabase).verify_access_token("   ")
    supabase.get_user.assert_not_awaited()


@pytest.mark.asyncio
async def test_upstream_failure(supabase):
    supabase.get_user.side_effect = SupabaseQueryError("unreachable")

    with pytest.raises(AuthUnavailableError):
        await AuthService(supabase).verify_access_token("token")
