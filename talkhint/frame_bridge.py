"""
WebSocket frame bridge for remote pages.

Each WebSocket client is treated as a remote frame whose origin is the
connection's ``Origin`` header. For every connection the bridge creates a
server-side window with its own CrossFrameMessenger:

- inbound JSON messages are dispatched to that window, so the messenger's
  listen handler applies dedupe, error-report forwarding and origin checks;
- accepted messages are routed by their ``type`` field to a handler;
- handler replies go back through ``CrossFrameMessenger.send``, so origin
  policy, dedupe and rate limiting apply to the bridge as well.

Each connection gets its own rate limiter, so one flooding client only trips
its own breaker. Passing ``rate_limiter`` opts into a single server-wide
breaker instead.

The FrameBridgeManager class is the central component that orchestrates all
frame bridge traffic.
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from talkhint.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_CROSS_ORIGIN_TEST,
    MESSAGE_TYPE_DEBUG,
    MESSAGE_TYPE_ERROR_REPORT,
    MESSAGE_TYPE_IFRAME_LOADED,
    MESSAGE_TYPE_IFRAME_READY,
    MESSAGE_TYPE_PING,
    MESSAGE_TYPE_TEST,
)
from talkhint.config.settings import AppSettings
from talkhint.handlers.frame_handlers import (
    FrameHandler,
    handle_debug,
    handle_error_report,
    handle_iframe_ready,
    handle_ping,
    handle_test_message,
)
from talkhint.messaging.frames import LocalFrame, MessageEvent, WebSocketFrame
from talkhint.messaging.messenger import CrossFrameMessenger, ErrorSink, log_error_report
from talkhint.messaging.origin_policy import OriginPolicy
from talkhint.messaging.throttle import RateLimiter

logger = logging.getLogger(LOGGER_NAME)

SERVER_WINDOW_ORIGIN = "talkhint-server"


class FrameBridgeManager:
    """Accepts frame bridge connections and routes their messages to handlers.

    The origin policy is shared by every connection. Each connection's
    messenger owns its dedupe set and envelope counter, and its own rate
    limiter unless a shared ``rate_limiter`` is given.
    """

    def __init__(
        self,
        settings: AppSettings,
        policy: Optional[OriginPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        error_sink: ErrorSink = log_error_report,
    ):
        self.settings = settings
        self.policy = policy or OriginPolicy(settings)
        self.rate_limiter = rate_limiter
        self.error_sink = error_sink
        self.active_frames: Dict[str, WebSocketFrame] = {}

        self.handlers: Dict[str, FrameHandler] = {
            MESSAGE_TYPE_IFRAME_READY: handle_iframe_ready,
            MESSAGE_TYPE_IFRAME_LOADED: handle_iframe_ready,
            MESSAGE_TYPE_TEST: handle_test_message,
            MESSAGE_TYPE_CROSS_ORIGIN_TEST: handle_test_message,
            MESSAGE_TYPE_PING: handle_ping,
            MESSAGE_TYPE_ERROR_REPORT: handle_error_report,
            MESSAGE_TYPE_DEBUG: handle_debug,
        }

    @property
    def active_count(self) -> int:
        return len(self.active_frames)

    def create_messenger(self, window: LocalFrame) -> CrossFrameMessenger:
        return CrossFrameMessenger(
            window,
            self.settings,
            policy=self.policy,
            rate_limiter=self.rate_limiter,
            error_sink=self.error_sink,
        )

    async def route(self, message: Any, origin: str, messenger: CrossFrameMessenger,
                    remote: WebSocketFrame) -> bool:
        """
        Run the handler for an accepted message and send its reply.

        Returns:
            bool: True if a reply was sent
        """
        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object frame message from {origin or 'unknown origin'}")
            return False

        message_type = message.get("type")
        handler = self.handlers.get(message_type)
        if handler is None:
            logger.warning(f"Unhandled frame message type received: {message_type}")
            return False

        reply = await handler(message, origin)
        if not reply:
            return False
        sent = messenger.send(remote, reply, origin)
        if sent:
            logger.info(f"Sent {reply.get('type')} for {message_type} to {remote.name}")
        else:
            logger.warning(f"Reply {reply.get('type')} to {remote.name} was not sent: {messenger.last_error}")
        return sent

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a frame bridge connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the connection and wraps it as a remote frame
        2. Dispatches each inbound message through the connection's messenger
        3. Routes accepted messages to handlers and sends their replies
        4. Flushes pending replies and cleans up when the connection ends
        """
        await websocket.accept()
        origin = websocket.headers.get("origin", "")
        frame_id = uuid.uuid4().hex[:8]

        remote = WebSocketFrame(websocket, origin, name=f"frame-{frame_id}")
        remote.start()
        server_window = LocalFrame(self.settings.page_origin or SERVER_WINDOW_ORIGIN, name="server")
        messenger = self.create_messenger(server_window)

        accepted: List[Tuple[Any, str]] = []
        unsubscribe = messenger.listen(lambda data, msg_origin: accepted.append((data, msg_origin)))
        self.active_frames[frame_id] = remote
        logger.info(f"Frame bridge connection {frame_id} established from {origin or 'unknown origin'}")

        try:
            while True:
                text = await websocket.receive_text()
                try:
                    data = json.loads(text)
                except json.JSONDecodeError as e:
                    logger.warning(f"Invalid JSON from {remote.name}: {e}")
                    continue

                server_window.dispatch(MessageEvent(data, origin, source=remote))
                while accepted:
                    message, msg_origin = accepted.pop(0)
                    await self.route(message, msg_origin, messenger, remote)

        except WebSocketDisconnect:
            logger.info(f"Frame bridge connection {frame_id} disconnected")
        except Exception as e:
            logger.error(f"Error in frame bridge connection {frame_id}: {e}", exc_info=True)
        finally:
            unsubscribe()
            self.active_frames.pop(frame_id, None)
            await remote.close()
            if websocket.client_state == WebSocketState.CONNECTED:
                await websocket.close()
            logger.info(f"Frame bridge connection {frame_id} closed")
