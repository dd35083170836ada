import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException, Response

from feedrank.api.news import ClientDisconnected, _run_feed, _serve_feed
from feedrank.services.personalization import PersonalizedFeedQuery


@pytest.fixture
def cancel_on_disconnect(monkeypatch):
    monkeypatch.setattr("feedrank.api.news.settings.cancel_fetches_on_disconnect", True)


def make_request(disconnected):
    request = MagicMock()
    request.is_disconnected = AsyncMock(return_value=disconnected)
    return request


async def never_finishes(cancelled: asyncio.Event):
    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        cancelled.set()
        raise


@pytest.mark.asyncio
async def test_disconnect_cancels_pending_feed(cancel_on_disconnect):
    cancelled = asyncio.Event()

    with pytest.raises(ClientDisconnected):
        await _run_feed(make_request(True), never_finishes(cancelled))

    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_finished_feed_returned_while_connected(cancel_on_disconnect):
    async def work():
        return "feed"

    assert await _run_feed(make_request(False), work()) == "feed"


@pytest.mark.asyncio
async def test_cancelled_handler_cancels_feed(cancel_on_disconnect):
    cancelled = asyncio.Event()
    handler = asyncio.create_task(_run_feed(make_request(False), never_finishes(cancelled)))
    await asyncio.sleep(0.02)

    handler.cancel()
    with pytest.raises(asyncio.CancelledError):
        await handler

    await asyncio.wait_for(cancelled.wait(), timeout=1)


@pytest.mark.asyncio
async def test_disconnect_not_watched_when_disabled(monkeypatch):
    monkeypatch.setattr("feedrank.api.news.settings.cancel_fetches_on_disconnect", False)
    request = make_request(True)

    async def work():
        return "feed"

    assert await _run_feed(request, work()) == "feed"
    request.is_disconnected.assert_not_awaited()


@pytest.mark.asyncio
async def test_disconnect_maps_to_499(cancel_on_disconnect):
    cancelled = asyncio.Event()
    service = MagicMock()
    service.get_personalized_feed = lambda user_id, query: never_finishes(cancelled)

    with pytest.raises(HTTPException) as exc_info:
        await _serve_feed(make_request(True), Response(), service, "user-1", PersonalizedFeedQuery())

    assert exc_info.value.status_code == 499
    assert cancelled.is_set()
    service.cache.stats.assert_not_called()
