"""
WebSocket client for the TalkHint frame bridge.

This module lets a remote page, a test harness or a diagnostic script act as
a frame on the bridge: it connects with an ``Origin``, announces itself,
sends typed messages with the usual envelope fields, reports errors and
waits for replies.
"""

import asyncio
import itertools
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import websockets

from talkhint.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_ERROR_REPORT,
    MESSAGE_TYPE_IFRAME_ACK,
    MESSAGE_TYPE_IFRAME_READY,
    MESSAGE_TYPE_PING,
    MESSAGE_TYPE_PONG,
)
from talkhint.models.message_schemas import Envelope

logger = logging.getLogger(LOGGER_NAME)


class FrameBridgeClient:
    """
    Client for exchanging frame messages with the bridge.

    Messages that arrive while ``wait_for`` is looking for a different type
    are kept and returned by later ``receive`` calls, in arrival order.
    """

    def __init__(self, url: str, origin: str):
        """
        Initialize the frame bridge client.

        Args:
            url: The bridge WebSocket URL, e.g. ``ws://localhost:8000/ws/frames``
            origin: Origin to present to the bridge
        """
        self.url = url
        self.origin = origin
        self.websocket = None
        self._ids = itertools.count(1)
        self._pending: List[Dict[str, Any]] = []

    async def connect(self) -> bool:
        """
        Establish a connection to the bridge.

        Returns:
            True if connection was successful, False otherwise
        """
        try:
            self.websocket = await websockets.connect(self.url, origin=self.origin)
            logger.info(f"Connected to frame bridge at {self.url} as {self.origin}")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to frame bridge: {e}")
            self.websocket = None
            return False

    async def send_message(self, message_type: str, payload: Any = None, **fields) -> Optional[int]:
        """
        Send a typed message wrapped in an envelope.

        Returns:
            The message id, or None when not connected or the send failed
        """
        if not self.websocket:
            logger.error("Cannot send message: Not connected")
            return None

        message: Dict[str, Any] = {"type": message_type}
        if payload is not None:
            message["payload"] = payload
        message.update(fields)
        envelope = Envelope(source=self.origin, id=next(self._ids))
        body = envelope.wrap(message)
        try:
            await self.websocket.send(json.dumps(body, ensure_ascii=False))
        except Exception as e:
            logger.error(f"Failed to send {message_type}: {e}")
            return None
        logger.debug(f"Sent {message_type} with id {envelope.id}")
        return envelope.id

    async def notify_ready(self) -> Optional[int]:
        return await self.send_message(MESSAGE_TYPE_IFRAME_READY, {"url": self.url})

    async def ping(self) -> Optional[int]:
        return await self.send_message(MESSAGE_TYPE_PING)

    async def report_error(self, error: str, details: Optional[Dict[str, Any]] = None) -> Optional[int]:
        """Send an ERROR_REPORT; the bridge logs it and acknowledges receipt."""
        return await self.send_message(MESSAGE_TYPE_ERROR_REPORT, {"error": error, "details": details or {}})

    async def receive(self, timeout: float = 5.0) -> Optional[Dict[str, Any]]:
        """Next message from the bridge, or None on timeout or disconnect."""
        if self._pending:
            return self._pending.pop(0)
        if not self.websocket:
            logger.error("Cannot receive: Not connected")
            return None
        try:
            raw = await asyncio.wait_for(self.websocket.recv(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug(f"No message received within {timeout}s")
            return None
        except websockets.exceptions.ConnectionClosed:
            logger.info("Frame bridge connection closed by server")
            self.websocket = None
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON from bridge: {e}")
            return None

    async def wait_for(self, message_type: str, timeout: float = 5.0) -> Optional[Dict[str, Any]]:
        """Wait for the first message of a given type, keeping the others."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        skipped: List[Dict[str, Any]] = []
        found = None
        for message in list(self._pending):
            if message.get("type") == message_type:
                self._pending.remove(message)
                return message

        while self.websocket and found is None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            raw = None
            try:
                raw = await asyncio.wait_for(self.websocket.recv(), timeout=remaining)
            except asyncio.TimeoutError:
                break
            except websockets.exceptions.ConnectionClosed:
                logger.info("Frame bridge connection closed by server")
                self.websocket = None
                break
            try:
                message = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON from bridge: {e}")
                continue
            if isinstance(message, dict) and message.get("type") == message_type:
                found = message
            else:
                skipped.append(message)

        self._pending.extend(skipped)
        if found is None:
            logger.warning(f"Timed out waiting for {message_type}")
        return found

    async def handshake(self, timeout: float = 5.0) -> bool:
        """Announce readiness and wait for the bridge's acknowledgement."""
        if await self.notify_ready() is None:
            return False
        return await self.wait_for(MESSAGE_TYPE_IFRAME_ACK, timeout) is not None

    async def check_alive(self, timeout: float = 5.0) -> bool:
        if await self.ping() is None:
            return False
        return await self.wait_for(MESSAGE_TYPE_PONG, timeout) is not None

    async def listen(self, message_handler: Callable[[Dict[str, Any]], Awaitable[None]]) -> None:
        """
        Pass every incoming message to a handler until the connection closes.

        Args:
            message_handler: Coroutine function called with each message
        """
        if not self.websocket:
            logger.error("Cannot listen: Not connected")
            return

        try:
            while self._pending:
                await message_handler(self._pending.pop(0))
            while True:
                raw = await self.websocket.recv()
                await message_handler(json.loads(raw))
        except websockets.exceptions.ConnectionClosed:
            logger.info("Frame bridge connection closed by server")
            self.websocket = None
        except Exception as e:
            logger.error(f"Error in frame bridge listener: {e}")
            await self.close()

    async def close(self) -> None:
        """Close the WebSocket connection."""
        if self.websocket:
            await self.websocket.close()
            logger.info("Closed frame bridge connection")
            self.websocket = None
