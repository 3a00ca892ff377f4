"""
Error taxonomy for the messaging and upstream request layers.

Only ConfigurationError is meant to reach UI code. Everything else is raised
and handled inside the component that owns it: messaging errors become a
``False`` return value, upstream errors drive the retry loop and finally the
mock fallback.
"""

from typing import Optional


class TalkHintError(Exception):
    """Base class for all application errors."""


class ConfigurationError(TalkHintError):
    """A setting the user must fix, such as a missing API key."""


# Messaging


class MessagingError(TalkHintError):
    """Base class for cross-frame messaging failures."""


class OriginRejected(MessagingError):
    """An inbound or outbound message was blocked by the origin policy."""

    def __init__(self, origin: Optional[str], direction: str = "outbound"):
        self.origin = origin
        self.direction = direction
        super().__init__(f"{direction} message for origin {origin or 'unknown'} rejected")


class RateLimitExceeded(MessagingError):
    """The sender-side circuit breaker tripped."""

    def __init__(self, count: int, limit: int, window_seconds: float):
        self.count = count
        self.limit = limit
        self.window_seconds = window_seconds
        super().__init__(
            f"{count} sends within {window_seconds:.1f}s exceeds the limit of {limit}"
        )


# Upstream


class UpstreamError(TalkHintError):
    """Base class for retryable failures of a single upstream attempt."""

    def __init__(self, message: str, request_id: Optional[str] = None,
                 endpoint: Optional[str] = None):
        self.request_id = request_id
        self.endpoint = endpoint
        super().__init__(message)


class UpstreamTimeout(UpstreamError):
    """The attempt did not complete within the configured timeout."""


class UpstreamHttpError(UpstreamError):
    """The endpoint answered with a non-success HTTP status."""

    def __init__(self, status: int, body: str, request_id: Optional[str] = None,
                 endpoint: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body[:200]}", request_id, endpoint)


class UpstreamNetworkError(UpstreamError):
    """Connection-level failure (DNS, refused, reset, TLS...)."""


class MalformedResponse(UpstreamError):
    """A successful HTTP response whose body is not a usable completion."""
