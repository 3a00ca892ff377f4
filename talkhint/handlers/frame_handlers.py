"""
Handlers for messages arriving on the frame bridge.

Each handler receives an accepted inbound message and the origin it came
from, and returns the reply to send back to that frame (or None). Replies
carry ``replyTo`` with the inbound message id so that answers to distinct
messages never collide in the outbound dedupe set.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from talkhint.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_IFRAME_ACK,
    MESSAGE_TYPE_IFRAME_RESPONSE,
    MESSAGE_TYPE_PONG,
)
from talkhint.models.message_schemas import utc_timestamp

logger = logging.getLogger(LOGGER_NAME)

FrameHandler = Callable[[Dict[str, Any], str], Awaitable[Optional[Dict[str, Any]]]]


def _reply(reply_type: str, message: Dict[str, Any], **fields) -> Dict[str, Any]:
    body = {
        "type": reply_type,
        "replyTo": message.get("_id"),
        "timestamp": utc_timestamp(),
    }
    body.update(fields)
    return body


async def handle_iframe_ready(message: Dict[str, Any], origin: str) -> Optional[Dict[str, Any]]:
    """Acknowledge a frame announcing that it has loaded."""
    logger.info(f"Frame ready: {message.get('type')} from {origin or 'unknown origin'}")
    return _reply(MESSAGE_TYPE_IFRAME_ACK, message, received=message.get("type"))


async def handle_test_message(message: Dict[str, Any], origin: str) -> Optional[Dict[str, Any]]:
    """Echo a test message back to its sender."""
    logger.info(f"Test message {message.get('type')} from {origin or 'unknown origin'}")
    return _reply(MESSAGE_TYPE_IFRAME_RESPONSE, message, action="response", received=message)


async def handle_ping(message: Dict[str, Any], origin: str) -> Optional[Dict[str, Any]]:
    return _reply(MESSAGE_TYPE_PONG, message)


async def handle_error_report(message: Dict[str, Any], origin: str) -> Optional[Dict[str, Any]]:
    """
    Acknowledge an error report.

    The messenger has already handed the report to the error sink; this only
    confirms receipt to the reporting frame.
    """
    return _reply(MESSAGE_TYPE_IFRAME_ACK, message, received=message.get("type"))


async def handle_debug(message: Dict[str, Any], origin: str) -> Optional[Dict[str, Any]]:
    logger.info(f"Debug message from {origin or 'unknown origin'}: {message.get('payload')}")
    return None
