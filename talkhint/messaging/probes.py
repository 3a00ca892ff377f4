"""Diagnostic probes for checking which origins a frame can reach."""

import logging
from typing import Dict, Optional
from urllib.parse import urlparse

from talkhint.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_CROSS_ORIGIN_TEST,
    MESSAGE_TYPE_TEST,
    WILDCARD_ORIGIN,
)
from talkhint.messaging.frames import FrameWindow
from talkhint.messaging.messenger import CrossFrameMessenger
from talkhint.models.message_schemas import utc_timestamp

logger = logging.getLogger(LOGGER_NAME)


def origin_from_url(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def probe_all_origins(messenger: CrossFrameMessenger, parent: Optional[FrameWindow]) -> Dict[str, bool]:
    """
    Post a CROSS_ORIGIN_TEST to the parent window addressed to every allow-listed origin.

    Args:
        messenger: Messenger of the embedded window
        parent: The embedding window, or None when not embedded

    Returns:
        Dict[str, bool]: Delivery result per target origin
    """
    results: Dict[str, bool] = {}
    if parent is None:
        logger.info("Not embedded in a parent window, skipping origin probe")
        return results

    targets = list(messenger.policy.allowed_origins)
    if messenger.settings.is_development and not messenger.settings.is_production:
        targets.append(WILDCARD_ORIGIN)

    for origin in targets:
        results[origin] = messenger.send(
            parent,
            {
                "type": MESSAGE_TYPE_CROSS_ORIGIN_TEST,
                "payload": {"targetOrigin": origin, "timestamp": utc_timestamp()},
            },
            origin,
        )

    reached = sum(1 for ok in results.values() if ok)
    logger.info(f"Origin probe finished: {reached}/{len(results)} targets accepted")
    return results


def probe_frame(messenger: CrossFrameMessenger, frame: Optional[FrameWindow], frame_url: str) -> bool:
    """Send a TEST message to an embedded frame using every plausible target origin."""
    if frame is None:
        logger.warning("Frame probe skipped: frame is not available")
        return False

    targets = []
    frame_origin = origin_from_url(frame_url)
    if frame_origin:
        targets.append(frame_origin)
    if messenger.settings.is_development and not messenger.settings.is_production:
        targets.append(WILDCARD_ORIGIN)
    targets.extend(o for o in messenger.policy.allowed_origins if o not in targets)

    delivered = False
    for origin in targets:
        message = {
            "type": MESSAGE_TYPE_TEST,
            "payload": {"message": f"Probe from {messenger.window.origin}", "targetOrigin": origin},
        }
        if messenger.send(frame, message, origin):
            delivered = True
    if not delivered:
        logger.warning(f"No target origin accepted for frame {frame_url}")
    return delivered
