"""
Window abstractions for cross-frame messaging.

A FrameWindow is anything a message can be posted to: an in-process frame
(LocalFrame) or a remote page connected over a WebSocket (WebSocketFrame).
Delivery follows postMessage semantics: the sender names a target origin and
the message is only delivered when it equals the recipient's origin or is the
wildcard ``"*"``. A mismatch is silently dropped, exactly as a browser does.
"""

import asyncio
import json
import logging
from typing import Any, Callable, List, Optional

from talkhint.config.constants import LOGGER_NAME, WILDCARD_ORIGIN

logger = logging.getLogger(LOGGER_NAME)


def origin_key(origin: Optional[str]) -> str:
    """Comparable form of a full origin (scheme, host and port kept)."""
    return (origin or "").strip().lower().rstrip("/")


class MessageEvent:
    """An inbound message as seen by a window's listeners."""

    def __init__(self, data: Any, origin: str, source: Optional["FrameWindow"] = None):
        self.data = data
        self.origin = origin
        self.source = source

    def __repr__(self) -> str:
        return f"MessageEvent(origin={self.origin!r}, data={self.data!r})"


MessageListener = Callable[[MessageEvent], None]


class FrameWindow:
    """Base class for a message-receiving browsing context."""

    def __init__(self, origin: str, name: Optional[str] = None):
        self.origin = origin
        self.name = name or origin or "frame"
        self._listeners: List[MessageListener] = []

    def add_listener(self, listener: MessageListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def accepts(self, target_origin: str) -> bool:
        """Whether a message addressed to ``target_origin`` may land here."""
        return target_origin == WILDCARD_ORIGIN or origin_key(target_origin) == origin_key(self.origin)

    def dispatch(self, event: MessageEvent) -> None:
        """Hand an event to every listener; a failing listener does not stop the rest."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in message listener on {self.name}: {e}", exc_info=True)

    def post_message(self, data: Any, target_origin: str,
                     source: Optional["FrameWindow"] = None) -> None:
        raise NotImplementedError


class LocalFrame(FrameWindow):
    """An in-process window; delivery is synchronous."""

    def __init__(self, origin: str, name: Optional[str] = None,
                 parent: Optional[FrameWindow] = None):
        super().__init__(origin, name)
        self.parent = parent
        self.delivered: List[MessageEvent] = []

    def post_message(self, data: Any, target_origin: str,
                     source: Optional[FrameWindow] = None) -> None:
        if not self.accepts(target_origin):
            logger.debug(
                f"Message for {target_origin} not delivered to {self.name} ({self.origin})"
            )
            return
        event = MessageEvent(data, source.origin if source else "", source)
        self.delivered.append(event)
        self.dispatch(event)


class WebSocketFrame(FrameWindow):
    """
    A remote page reached over a WebSocket.

    Outbound messages go into a queue drained by a single writer task, so
    messages reach the peer in the order they were posted.
    """

    def __init__(self, websocket, origin: str, name: Optional[str] = None):
        super().__init__(origin, name or f"ws:{origin or 'unknown'}")
        self.websocket = websocket
        self._outbound: asyncio.Queue = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None
        self.closed = False

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            text = await self._outbound.get()
            if text is None:
                break
            try:
                await self.websocket.send_text(text)
            except Exception as e:
                logger.error(f"Failed to write to {self.name}: {e}")
                self.closed = True
                break

    def post_message(self, data: Any, target_origin: str,
                     source: Optional[FrameWindow] = None) -> None:
        if self.closed:
            raise ConnectionError(f"{self.name} is closed")
        if not self.accepts(target_origin):
            logger.debug(f"Message for {target_origin} not delivered to {self.name}")
            return
        self._outbound.put_nowait(json.dumps(data, ensure_ascii=False))

    async def close(self) -> None:
        """Flush queued messages and stop the writer."""
        if self.closed and self._writer is None:
            return
        self._outbound.put_nowait(None)
        if self._writer is not None:
            try:
                await asyncio.wait_for(self._writer, timeout=5.0)
            except asyncio.TimeoutError:
                self._writer.cancel()
            self._writer = None
        self.closed = True
