import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from talkhint.config.settings import AppSettings
from talkhint.frame_bridge import SERVER_WINDOW_ORIGIN, FrameBridgeManager
from talkhint.handlers.frame_handlers import (
    handle_debug,
    handle_iframe_ready,
    handle_ping,
    handle_test_message,
)
from talkhint.messaging.frames import LocalFrame, WebSocketFrame
from talkhint.messaging.throttle import RateLimiter


def make_websocket(origin, *messages):
    """Mock WebSocket that yields the given messages and then disconnects"""
    websocket = AsyncMock(spec=WebSocket)
    websocket.headers = {"origin": origin} if origin else {}
    websocket.client_state = WebSocketState.CONNECTED
    websocket.receive_text.side_effect = [
        m if isinstance(m, str) else json.dumps(m) for m in messages
    ] + [WebSocketDisconnect()]
    return websocket


def sent_messages(websocket):
    return [json.loads(c.args[0]) for c in websocket.send_text.await_args_list]


@pytest.fixture
def bridge(prod_settings):
    return FrameBridgeManager(prod_settings)


@pytest.mark.asyncio
async def test_bridge_initialization(bridge):
    """Test that FrameBridgeManager initializes correctly"""
    assert len(bridge.handlers) == 7
    for message_type in ("IFRAME_READY", "IFRAME_LOADED", "TEST", "CROSS_ORIGIN_TEST",
                         "PING", "ERROR_REPORT", "DEBUG"):
        assert message_type in bridge.handlers
    assert bridge.active_count == 0


@pytest.mark.asyncio
async def test_handle_websocket_flow(bridge):
    """Test the full flow of a trusted frame connection"""
    websocket = make_websocket(
        "https://lovable.dev",
        {"type": "IFRAME_READY", "_id": 1},
        {"type": "PING", "_id": 2},
        {"type": "TEST", "_id": 3, "payload": {"message": "hi"}},
    )

    await bridge.handle_websocket(websocket)

    websocket.accept.assert_awaited_once()
    replies = sent_messages(websocket)
    assert [r["type"] for r in replies] == ["IFRAME_ACK", "PONG", "IFRAME_RESPONSE"]
    assert [r["replyTo"] for r in replies] == [1, 2, 3]
    assert replies[0]["received"] == "IFRAME_READY"
    assert replies[2]["received"]["payload"] == {"message": "hi"}
    assert all(r["_source"] == "https://lovable.dev" for r in replies)
    websocket.close.assert_awaited_once()
    assert bridge.active_count == 0


@pytest.mark.asyncio
async def test_untrusted_origin_gets_no_replies(bridge):
    """Messages from an origin outside the allow-list are dropped"""
    websocket = make_websocket("https://evil.example", {"type": "PING", "_id": 1})
    await bridge.handle_websocket(websocket)
    websocket.send_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_error_report_reaches_sink_from_any_origin(prod_settings):
    """Error reports are logged even when the origin is rejected"""
    sink = MagicMock()
    bridge = FrameBridgeManager(prod_settings, error_sink=sink)
    report = {"type": "ERROR_REPORT", "_id": 9, "payload": {"error": "boom"}}
    websocket = make_websocket("https://evil.example", report)

    await bridge.handle_websocket(websocket)

    sink.assert_called_once_with(report, "https://evil.example")
    websocket.send_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_invalid_and_duplicate_messages(bridge):
    """Invalid JSON is skipped and exact duplicates are answered once"""
    ping = json.dumps({"type": "PING", "_id": 1})
    websocket = make_websocket(
        "https://lovable.dev",
        "this is not json",
        ping,
        ping,
        {"type": "UNKNOWN", "_id": 2},
        {"type": "DEBUG", "_id": 3, "payload": "trace"},
        {"type": "PING", "_id": 4},
    )

    await bridge.handle_websocket(websocket)

    replies = sent_messages(websocket)
    assert [(r["type"], r["replyTo"]) for r in replies] == [("PONG", 1), ("PONG", 4)]


@pytest.mark.asyncio
async def test_server_window_origin_without_page_origin():
    """Without a configured page origin the server window uses a fixed name"""
    settings = AppSettings(environment="test", bypass_origin_check=True)
    bridge = FrameBridgeManager(settings)
    websocket = make_websocket("https://anything.example", {"type": "PING", "_id": 1})

    await bridge.handle_websocket(websocket)

    assert sent_messages(websocket)[0]["_source"] == SERVER_WINDOW_ORIGIN


@pytest.mark.asyncio
async def test_injected_rate_limiter_shared_across_connections(prod_settings):
    """An injected rate limiter caps replies across every connection"""
    bridge = FrameBridgeManager(prod_settings, rate_limiter=RateLimiter(1))
    first = make_websocket("https://lovable.dev", {"type": "PING", "_id": 1})
    second = make_websocket("https://lovable.dev", {"type": "PING", "_id": 2})

    await bridge.handle_websocket(first)
    await bridge.handle_websocket(second)

    assert len(sent_messages(first)) == 1
    assert sent_messages(second) == []


@pytest.mark.asyncio
async def test_flooding_connection_only_trips_its_own_limiter(bridge):
    """A client over the default cap loses its own replies, not other clients'"""
    flood = make_websocket(
        "https://lovable.dev", *[{"type": "PING", "_id": i} for i in range(1, 32)]
    )
    other = make_websocket("https://lovable.dev", {"type": "PING", "_id": 1})

    await bridge.handle_websocket(flood)
    await bridge.handle_websocket(other)

    assert len(sent_messages(flood)) == 30
    assert [m["type"] for m in sent_messages(other)] == ["PONG"]


@pytest.mark.asyncio
async def test_route_ignores_non_objects_and_unknown_types(bridge):
    messenger = bridge.create_messenger(LocalFrame("https://lovable.dev"))
    remote = MagicMock(spec=WebSocketFrame)
    assert not await bridge.route(["PING"], "https://lovable.dev", messenger, remote)
    assert not await bridge.route({"type": "NOPE"}, "https://lovable.dev", messenger, remote)
    remote.post_message.assert_not_called()


@pytest.mark.asyncio
async def test_frame_handlers():
    """Test that each handler builds the expected reply"""
    ready = await handle_iframe_ready({"type": "IFRAME_LOADED", "_id": 5}, "https://lovable.dev")
    assert ready["type"] == "IFRAME_ACK"
    assert ready["received"] == "IFRAME_LOADED"
    assert ready["replyTo"] == 5

    pong = await handle_ping({"type": "PING"}, "https://lovable.dev")
    assert pong["type"] == "PONG"
    assert pong["replyTo"] is None

    echo = await handle_test_message({"type": "TEST", "_id": 1}, "https://lovable.dev")
    assert echo["action"] == "response"
    assert echo["received"] == {"type": "TEST", "_id": 1}

    assert await handle_debug({"type": "DEBUG", "payload": "x"}, "") is None
