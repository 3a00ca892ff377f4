"""
Registry of interchangeable proxy endpoints for the upstream completion API.

Endpoints are tried in a fixed rotation order: the self-hosted proxy first,
then the vendor proxies, then the upstream API itself. The current endpoint
is shared by every caller, so a rotation triggered by one failing request
affects the next request issued by anyone.
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel

from talkhint.config.constants import (
    CHAT_COMPLETIONS_PATH,
    LOCAL_PROXY_PREFIX,
    LOCAL_PROXY_URL,
    LOGGER_NAME,
    OPENAI_API_BASE,
    VENDOR_A_PROXY_URL,
    VENDOR_B_PROXY_URL,
    VENDOR_C_PROXY_URL,
)
from talkhint.config.settings import ConfigManager, ensure_url_protocol

logger = logging.getLogger(LOGGER_NAME)


class EndpointKind(str, Enum):
    """How an endpoint expects request URLs to be built."""
    SELF_HOSTED = "self_hosted"
    VENDOR_A = "vendor_a"
    VENDOR_B = "vendor_b"
    VENDOR_C = "vendor_c"
    DIRECT = "direct"


# Kinds whose base URL already embeds the upstream target; only the
# upstream-side suffix is appended.
FORWARDING_KINDS = frozenset({EndpointKind.VENDOR_C, EndpointKind.DIRECT})


class ProxyEndpoint(BaseModel):
    """A proxy base URL plus the URL-construction rules of its kind."""
    base_url: str
    kind: EndpointKind

    @property
    def forwards_upstream(self) -> bool:
        return self.kind in FORWARDING_KINDS

    def with_base(self, base_url: str) -> "ProxyEndpoint":
        return self.model_copy(update={"base_url": base_url})


def ensure_endpoint(base_url: str, path: str) -> str:
    """
    Append an API path to a proxy base URL without duplicating segments.

    An ``/api`` segment is inserted unless the base already ends with it or
    the path already starts with it. A base that already ends with the path
    is returned unchanged.

    Args:
        base_url: Proxy base URL, with or without a trailing slash
        path: Logical API path such as ``/openai/chat/completions``

    Returns:
        str: The full request URL
    """
    clean_base = base_url.rstrip("/")
    clean_path = path if path.startswith("/") else f"/{path}"

    if clean_base.endswith(clean_path):
        return clean_base
    if not clean_base.endswith("/api") and not clean_path.startswith("/api/"):
        return f"{clean_base}/api{clean_path}"
    return f"{clean_base}{clean_path}"


def default_endpoints(self_hosted_url: str = LOCAL_PROXY_URL) -> List[ProxyEndpoint]:
    """The rotation order used in production."""
    return [
        ProxyEndpoint(base_url=ensure_url_protocol(self_hosted_url), kind=EndpointKind.SELF_HOSTED),
        ProxyEndpoint(base_url=VENDOR_A_PROXY_URL, kind=EndpointKind.VENDOR_A),
        ProxyEndpoint(base_url=VENDOR_B_PROXY_URL, kind=EndpointKind.VENDOR_B),
        ProxyEndpoint(base_url=VENDOR_C_PROXY_URL, kind=EndpointKind.VENDOR_C),
        ProxyEndpoint(base_url=OPENAI_API_BASE, kind=EndpointKind.DIRECT),
    ]


class ProxyEndpointRegistry:
    """Ordered endpoint list with a shared round-robin cursor."""

    def __init__(self, endpoints: Optional[Sequence[ProxyEndpoint]] = None):
        self._endpoints: List[ProxyEndpoint] = list(endpoints or default_endpoints())
        if not self._endpoints:
            raise ValueError("At least one proxy endpoint is required")
        self._index = 0

    @classmethod
    def from_config(cls, config_manager: ConfigManager) -> "ProxyEndpointRegistry":
        """Build the default registry and follow proxy URL changes made through the config."""
        registry = cls(default_endpoints(config_manager.get_server_proxy_url()))
        config_manager.subscribe(registry.on_config_change)
        return registry

    @property
    def endpoints(self) -> List[ProxyEndpoint]:
        return list(self._endpoints)

    def current(self) -> ProxyEndpoint:
        return self._endpoints[self._index]

    def rotate(self) -> ProxyEndpoint:
        """Advance to the next endpoint, wrapping around."""
        previous = self.current()
        self._index = (self._index + 1) % len(self._endpoints)
        endpoint = self.current()
        logger.warning(
            f"Rotating proxy endpoint: {previous.kind.value} -> {endpoint.kind.value} ({endpoint.base_url})"
        )
        return endpoint

    def reset(self) -> None:
        self._index = 0

    def find(self, kind: EndpointKind) -> Optional[ProxyEndpoint]:
        for endpoint in self._endpoints:
            if endpoint.kind == kind:
                return endpoint
        return None

    def direct(self) -> ProxyEndpoint:
        return self.find(EndpointKind.DIRECT) or ProxyEndpoint(
            base_url=OPENAI_API_BASE, kind=EndpointKind.DIRECT
        )

    def self_hosted(self) -> ProxyEndpoint:
        return self.find(EndpointKind.SELF_HOSTED) or self._endpoints[0]

    def update_self_hosted(self, base_url: str) -> None:
        """Replace the self-hosted endpoint's base URL."""
        clean = ensure_url_protocol(base_url.strip())
        for i, endpoint in enumerate(self._endpoints):
            if endpoint.kind == EndpointKind.SELF_HOSTED:
                self._endpoints[i] = endpoint.with_base(clean)
                logger.info(f"Self-hosted proxy endpoint updated to {clean}")
                return
        self._endpoints.insert(0, ProxyEndpoint(base_url=clean, kind=EndpointKind.SELF_HOSTED))
        self._index = 0

    def on_config_change(self, field: str, value) -> None:
        if field == "server_proxy_url" and value:
            self.update_self_hosted(value)

    def build_url(self, endpoint: ProxyEndpoint, logical_path: str = CHAT_COMPLETIONS_PATH) -> str:
        """
        Build the request URL for a logical API path on an endpoint.

        Completion requests to endpoints with their own path layout are routed
        under the ``/openai`` prefix. Forwarding kinds only receive the
        upstream-side suffix. The result is stable under repeated application.
        """
        path = logical_path if logical_path.startswith("/") else f"/{logical_path}"
        if endpoint.forwards_upstream:
            base = endpoint.base_url.rstrip("/")
            return base if base.endswith(path) else f"{base}{path}"
        if path == CHAT_COMPLETIONS_PATH:
            path = f"{LOCAL_PROXY_PREFIX}{path}"
        return ensure_endpoint(ensure_url_protocol(endpoint.base_url), path)
