import json

import httpx
import pytest

from smack_talk.schemas.chat_event import ChatEvent, MediaAttachment
from smack_talk.services.history_store import HistoryStoreError, HttpHistoryStore
from smack_talk.services.stats_store import HttpStatsStore, StatsStoreError
from smack_talk.services.transport import TransportError

HISTORY_URL = "https://history.test/messages"
STATS_URL = "https://stats.test/api"


@pytest.mark.asyncio
async def test_history_load_recent_sends_room_and_limit():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json={"messages": [{"id": 2, "text": "b"}, {"id": 1, "text": "a"}, "junk"]},
        )

    store = HttpHistoryStore(HISTORY_URL, transport=httpx.MockTransport(handler))
    messages = await store.load_recent("room-1", 50)
    await store.close()

    assert seen["params"] == {"gameId": "room-1", "limit": "50"}
    assert seen["path"] == "/messages/"
    assert [message["id"] for message in messages] == [2, 1]


@pytest.mark.asyncio
async def test_history_load_recent_without_messages_key_is_empty():
    store = HttpHistoryStore(
        HISTORY_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    )
    assert await store.load_recent("room-1", 10) == []


@pytest.mark.asyncio
async def test_history_append_posts_wire_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"success": True})

    store = HttpHistoryStore(HISTORY_URL, transport=httpx.MockTransport(handler))
    event = ChatEvent(
        id=10,
        author_name="Ann",
        body="hi",
        created_at=10,
        media=MediaAttachment(url="https://giphy.com/a.gif", alt_text="td"),
    )
    await store.append("room-1", event)

    assert captured["method"] == "POST"
    assert captured["body"] == {
        "id": 10,
        "username": "Ann",
        "text": "hi",
        "type": "message",
        "timestamp": 10,
        "media": {"type": "gif", "url": "https://giphy.com/a.gif", "alt": "td"},
        "gameId": "room-1",
    }


@pytest.mark.asyncio
async def test_history_server_error_raises_typed_error():
    store = HttpHistoryStore(
        HISTORY_URL, transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )
    with pytest.raises(HistoryStoreError):
        await store.load_recent("room-1", 10)


@pytest.mark.asyncio
async def test_network_failure_maps_to_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    store = HttpStatsStore(STATS_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError):
        await store.fetch_stats("user_1")


@pytest.mark.asyncio
async def test_unconfigured_client_raises():
    store = HttpHistoryStore("")
    assert store.enabled is False
    with pytest.raises(HistoryStoreError):
        await store.load_recent("room-1", 10)


@pytest.mark.asyncio
async def test_invalid_json_raises_typed_error():
    store = HttpStatsStore(
        STATS_URL,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>")),
    )
    with pytest.raises(StatsStoreError):
        await store.leaderboard(10)


@pytest.mark.asyncio
async def test_stats_fetch_and_xp_update():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            assert request.url.path == "/api/user-stats"
            assert request.url.params["clerkUserId"] == "user_1"
            return httpx.Response(200, json={"stats": {"xp": 120, "level": 2}})
        assert request.url.path == "/api/user-stats/xp"
        assert json.loads(request.content) == {
            "clerkUserId": "user_1",
            "username": "Ann",
            "amount": 5,
        }
        return httpx.Response(200, json={"stats": {"xp": 125}})

    store = HttpStatsStore(STATS_URL, transport=httpx.MockTransport(handler))
    fetched = await store.fetch_stats("user_1")
    updated = await store.apply_xp_delta("user_1", "Ann", 5)

    assert fetched is not None and fetched.xp == 120
    assert updated.xp == 125


@pytest.mark.asyncio
async def test_stats_fetch_for_unknown_user_is_none():
    store = HttpStatsStore(
        STATS_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    )
    assert await store.fetch_stats("nobody") is None


@pytest.mark.asyncio
async def test_leaderboard_skips_malformed_rows():
    rows = [
        {"clerkUserId": "u1", "username": "Ann", "xp": 500},
        {"username": "missing id"},
        {"clerkUserId": "u2", "xp": 90},
    ]
    store = HttpStatsStore(
        STATS_URL,
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"leaderboard": rows})
        ),
    )
    entries = await store.leaderboard(10)

    assert [entry.user_id for entry in entries] == ["u1", "u2"]
    assert entries[1].display_name == "Unknown"
