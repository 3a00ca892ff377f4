"""
Unit tests for the frame bridge WebSocket client.

These tests verify the functionality of the FrameBridgeClient class, which
connects to the bridge with an origin, sends enveloped frame messages and
waits for typed replies.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
import websockets

from talkhint.services.frame_client import FrameBridgeClient

ORIGIN = "https://talkhint.lovable.app"


@pytest.fixture
def frame_client():
    """Create a FrameBridgeClient instance for testing."""
    return FrameBridgeClient("ws://localhost:8000/ws/frames", ORIGIN)


@pytest.fixture
def connected_client(frame_client):
    frame_client.websocket = AsyncMock()
    return frame_client


def sent(client):
    return [json.loads(c.args[0]) for c in client.websocket.send.await_args_list]


@pytest.mark.asyncio
async def test_connect_success(frame_client):
    """Test successful connection with the configured origin."""
    mock_ws = AsyncMock()
    mock_connect = AsyncMock(return_value=mock_ws)

    with patch("websockets.connect", mock_connect):
        assert websockets.connect is mock_connect
        result = await frame_client.connect()

    mock_connect.assert_called_once_with(frame_client.url, origin=ORIGIN)
    assert result is True
    assert frame_client.websocket == mock_ws


@pytest.mark.asyncio
async def test_connect_failure(frame_client):
    """Test connection failure."""
    with patch("talkhint.services.frame_client.websockets.connect",
               side_effect=Exception("Connection error")):
        result = await frame_client.connect()

    assert result is False
    assert frame_client.websocket is None


@pytest.mark.asyncio
async def test_send_message_adds_envelope(connected_client):
    first = await connected_client.send_message("TEST", {"message": "hi"}, extra=True)
    second = await connected_client.ping()

    assert (first, second) == (1, 2)
    message, ping = sent(connected_client)
    assert message["type"] == "TEST"
    assert message["payload"] == {"message": "hi"}
    assert message["extra"] is True
    assert message["_source"] == ORIGIN
    assert message["_id"] == 1
    assert ping["type"] == "PING"
    assert "payload" not in ping


@pytest.mark.asyncio
async def test_send_without_connection(frame_client):
    assert await frame_client.send_message("PING") is None


@pytest.mark.asyncio
async def test_send_failure_returns_none(connected_client):
    connected_client.websocket.send.side_effect = Exception("broken pipe")
    assert await connected_client.ping() is None


@pytest.mark.asyncio
async def test_report_error(connected_client):
    await connected_client.report_error("Widget crashed", {"line": 42})
    report = sent(connected_client)[0]
    assert report["type"] == "ERROR_REPORT"
    assert report["payload"] == {"error": "Widget crashed", "details": {"line": 42}}


@pytest.mark.asyncio
async def test_wait_for_keeps_other_messages(connected_client):
    connected_client.websocket.recv.side_effect = [
        json.dumps({"type": "IFRAME_ACK", "replyTo": 1}),
        "garbage",
        json.dumps({"type": "PONG", "replyTo": 2}),
    ]

    pong = await connected_client.wait_for("PONG", timeout=1.0)
    assert pong["replyTo"] == 2

    ack = await connected_client.receive()
    assert ack == {"type": "IFRAME_ACK", "replyTo": 1}


@pytest.mark.asyncio
async def test_wait_for_uses_pending_first(connected_client):
    connected_client._pending = [{"type": "PONG", "replyTo": 7}]
    assert (await connected_client.wait_for("PONG"))["replyTo"] == 7
    connected_client.websocket.recv.assert_not_awaited()


@pytest.mark.asyncio
async def test_wait_for_timeout(connected_client):
    connected_client.websocket.recv.side_effect = asyncio.TimeoutError()
    assert await connected_client.wait_for("PONG", timeout=0.1) is None


@pytest.mark.asyncio
async def test_receive_connection_closed(connected_client):
    connected_client.websocket.recv.side_effect = websockets.exceptions.ConnectionClosed(None, None)
    assert await connected_client.receive() is None
    assert connected_client.websocket is None


@pytest.mark.asyncio
async def test_handshake(connected_client):
    connected_client.websocket.recv.return_value = json.dumps({"type": "IFRAME_ACK", "replyTo": 1})
    assert await connected_client.handshake(timeout=1.0) is True
    assert sent(connected_client)[0]["type"] == "IFRAME_READY"


@pytest.mark.asyncio
async def test_check_alive(connected_client):
    connected_client.websocket.recv.return_value = json.dumps({"type": "PONG", "replyTo": 1})
    assert await connected_client.check_alive(timeout=1.0) is True


@pytest.mark.asyncio
async def test_listen_until_closed(connected_client):
    handler = AsyncMock()
    connected_client._pending = [{"type": "IFRAME_ACK"}]
    connected_client.websocket.recv.side_effect = [
        json.dumps({"type": "PONG"}),
        websockets.exceptions.ConnectionClosed(None, None),
    ]

    await connected_client.listen(handler)

    assert [c.args[0]["type"] for c in handler.await_args_list] == ["IFRAME_ACK", "PONG"]
    assert connected_client.websocket is None


@pytest.mark.asyncio
async def test_close(connected_client):
    websocket = connected_client.websocket
    await connected_client.close()
    websocket.close.assert_awaited_once()
    assert connected_client.websocket is None
