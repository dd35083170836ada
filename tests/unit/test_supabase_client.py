import httpx
import pytest

from feedrank.db.supabase_client import (
    SupabaseAuthError,
    SupabaseClient,
    SupabaseError,
    SupabaseQueryError,
)


def make_client(handler):
    return SupabaseClient(
        url="https://project.supabase.co/",
        api_key="service-key",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_select_builds_postgrest_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["apikey"] = request.headers.get("apikey")
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json=[{"id": "a1"}])

    client = make_client(handler)
    rows = await client.select(
        "news_articles",
        filters={"is_active": "eq.true"},
        order="published_at.desc",
        limit=50,
        offset=100,
    )
    await client.close()

    assert rows == [{"id": "a1"}]
    assert seen["path"] == "/rest/v1/news_articles"
    assert seen["params"] == {
        "select": "*",
        "is_active": "eq.true",
        "order": "published_at.desc",
        "limit": "50",
        "offset": "100",
    }
    assert seen["apikey"] == "service-key"
    assert seen["auth"] == "Bearer service-key"


@pytest.mark.asyncio
async def test_select_rejected_key():
    client = make_client(lambda request: httpx.Response(401, json={"message": "bad key"}))

    with pytest.raises(SupabaseAuthError):
        await client.select("user_interests")


@pytest.mark.asyncio
async def test_select_server_error():
    client = make_client(lambda request: httpx.Response(500, text="relation does not exist"))

    with pytest.raises(SupabaseQueryError, match="relation does not exist"):
        await client.select("user_interests")


@pytest.mark.asyncio
async def test_select_unexpected_shape():
    client = make_client(lambda request: httpx.Response(200, json={"rows": []}))

    with pytest.raises(SupabaseQueryError):
        await client.select("user_interests")


@pytest.mark.asyncio
async def test_select_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler)

    with pytest.raises(SupabaseQueryError, match="Request failed"):
        await client.select("user_interests")


@pytest.mark.asyncio
async def test_get_user_uses_access_token():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"id": "user-1", "email": "reader@example.com"})

    client = make_client(handler)
    user = await client.get_user("user-token")

    assert user["id"] == "user-1"
    assert seen["path"] == "/auth/v1/user"
    assert seen["auth"] == "Bearer user-token"


@pytest.mark.asyncio
async def test_get_user_invalid_token():
    client = make_client(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
    assert await client.get_user("expired") is None


@pytest.mark.asyncio
async def test_get_user_upstream_failure():
    client = make_client(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(SupabaseError):
        await client.get_user("token")


def test_url_required(monkeypatch):
    monkeypatch.setattr("feedrank.db.supabase_client.settings.supabase_url", "")

    with pytest.raises(SupabaseError):
        SupabaseClient(url="", api_key="k")
