"""
Cross-frame messenger: the send/receive facade over origin policy and throttling.

``send`` refuses same-window loops, suppresses duplicates, enforces the rate
cap, wraps the payload in an envelope, and delivers it only to a validated
target origin. In development the wildcard target is used; a production
process never falls back to the wildcard.

``listen`` installs exactly one handler on the owning window. Inbound events
are deduplicated, error reports are forwarded to the error sink, and the
rest is delivered to the callback only when the origin passes the policy.
"""

import itertools
import logging
from typing import Any, Callable, Optional

from talkhint.config.constants import LOGGER_NAME, MESSAGE_TYPE_ERROR_REPORT, WILDCARD_ORIGIN
from talkhint.config.settings import AppSettings
from talkhint.errors import MessagingError, OriginRejected, RateLimitExceeded
from talkhint.messaging.frames import FrameWindow, MessageEvent
from talkhint.messaging.origin_policy import OriginPolicy
from talkhint.messaging.throttle import MessageDeduper, RateLimiter
from talkhint.models.message_schemas import Envelope

logger = logging.getLogger(LOGGER_NAME)

OnMessage = Callable[[Any, str], None]
ErrorSink = Callable[[Any, str], None]


def log_error_report(data: Any, origin: str) -> None:
    """Default error sink: record the report, never act on it."""
    logger.error(f"Error report from {origin or 'unknown origin'}: {data}")


def is_error_report(data: Any) -> bool:
    return isinstance(data, dict) and data.get("type") == MESSAGE_TYPE_ERROR_REPORT


class CrossFrameMessenger:
    """Send and receive messages on behalf of one window."""

    def __init__(
        self,
        window: FrameWindow,
        settings: AppSettings,
        policy: Optional[OriginPolicy] = None,
        outbound_deduper: Optional[MessageDeduper] = None,
        inbound_deduper: Optional[MessageDeduper] = None,
        rate_limiter: Optional[RateLimiter] = None,
        error_sink: ErrorSink = log_error_report,
    ):
        self.window = window
        self.settings = settings
        self.policy = policy or OriginPolicy(settings)
        self.outbound_deduper = outbound_deduper or MessageDeduper(settings.dedupe_capacity)
        self.inbound_deduper = inbound_deduper or MessageDeduper(settings.dedupe_capacity)
        self.rate_limiter = rate_limiter or RateLimiter(settings.rate_limit_per_second)
        self.error_sink = error_sink
        self.last_error: Optional[MessagingError] = None
        self._ids = itertools.count(1)
        self._handler: Optional[Callable[[MessageEvent], None]] = None

    # Sending

    def send(self, target_window: Optional[FrameWindow], message: Any,
             target_origin: str) -> bool:
        """
        Post a message to another window.

        Args:
            target_window: Recipient window
            message: JSON-serializable payload
            target_origin: Origin the recipient must have for delivery

        Returns:
            bool: True if the message was handed to the transport
        """
        self.last_error = None
        if target_window is None:
            logger.warning("Send skipped: no target window")
            return False
        if target_window is self.window:
            logger.warning("Send skipped: target is the sending window")
            return False

        key = MessageDeduper.make_key(target_origin, message)
        if not self.outbound_deduper.should_process(key):
            return False

        try:
            self.rate_limiter.check()
        except RateLimitExceeded as e:
            logger.error(f"Send aborted, possible message loop: {e}")
            self.last_error = e
            return False

        envelope = Envelope(source=self.window.origin, id=next(self._ids))
        enriched = envelope.wrap(message)

        if self.settings.is_development and not self.settings.is_production:
            logger.debug(f"Development send to {target_window.name} with wildcard target")
            return self._deliver(target_window, enriched, WILDCARD_ORIGIN)

        if self.policy.is_safe_target(target_origin):
            return self._deliver(target_window, enriched, target_origin)

        self.last_error = OriginRejected(target_origin, "outbound")
        if self.settings.allows_wildcard_fallback:
            logger.warning(f"Target {target_origin} rejected, falling back to wildcard delivery")
            return self._deliver(target_window, enriched, WILDCARD_ORIGIN)
        logger.warning(f"Send blocked: {self.last_error}")
        return False

    def _deliver(self, target_window: FrameWindow, data: Any, target_origin: str) -> bool:
        try:
            target_window.post_message(data, target_origin, source=self.window)
            logger.debug(f"Message {data.get('_id')} posted to {target_window.name} ({target_origin})")
            return True
        except Exception as e:
            logger.error(f"Transport error posting to {target_window.name}: {e}")
            if target_origin != WILDCARD_ORIGIN and self.settings.allows_wildcard_fallback:
                try:
                    target_window.post_message(data, WILDCARD_ORIGIN, source=self.window)
                    logger.warning(f"Message delivered to {target_window.name} via wildcard retry")
                    return True
                except Exception as retry_error:
                    logger.error(f"Wildcard retry failed: {retry_error}")
            return False

    # Receiving

    def listen(self, on_message: OnMessage) -> Callable[[], None]:
        """
        Install the inbound handler, replacing any previous one.

        Returns:
            Callable[[], None]: Removes the handler again
        """
        if self._handler is not None:
            logger.info(f"Replacing existing message handler on {self.window.name}")
            self.window.remove_listener(self._handler)

        def handle(event: MessageEvent) -> None:
            self._handle_event(event, on_message)

        self._handler = handle
        self.window.add_listener(handle)

        def unsubscribe() -> None:
            if self._handler is handle:
                self.window.remove_listener(handle)
                self._handler = None
                self.inbound_deduper.clear()

        return unsubscribe

    @property
    def is_listening(self) -> bool:
        return self._handler is not None

    def _handle_event(self, event: MessageEvent, on_message: OnMessage) -> None:
        origin = event.origin or ""
        key = MessageDeduper.make_key(origin, event.data)
        if not self.inbound_deduper.should_process(key):
            return

        if is_error_report(event.data):
            try:
                self.error_sink(event.data, origin)
            except Exception as e:
                logger.error(f"Error sink failed: {e}", exc_info=True)

        if not self._inbound_allowed(event, origin):
            return

        try:
            on_message(event.data, origin)
        except Exception as e:
            logger.error(f"Error in message callback: {e}", exc_info=True)

    def _inbound_allowed(self, event: MessageEvent, origin: str) -> bool:
        if event.source is self.window:
            return True
        if self.policy.is_trusted_domain(origin):
            return True
        if self.settings.allows_wildcard_fallback:
            logger.info(f"Development mode: accepting message from {origin or '<empty>'}")
            return True
        if self.policy.is_allowed(origin):
            return True
        logger.warning(f"Dropped message from untrusted origin {origin or '<empty>'}")
        return False
