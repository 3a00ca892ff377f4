"""
Origin validation for cross-frame messaging.

OriginPolicy decides whether an origin may send messages to us (inbound) or
receive messages from us (outbound). Both directions share one rule set:

1. Global bypass flag set: allowed (logged at WARNING).
2. Development context and an empty or localhost origin: allowed.
3. Exact match against the normalized static allow-list.
4. Host belongs to a trusted root domain family.
5. Otherwise: rejected.
"""

import logging
import re
from typing import Iterable, Optional, Sequence, Tuple

from talkhint.config.constants import ALLOWED_ORIGINS, LOGGER_NAME, TRUSTED_DOMAINS, WILDCARD_ORIGIN
from talkhint.config.settings import AppSettings

logger = logging.getLogger(LOGGER_NAME)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://")
_PORT_RE = re.compile(r":\d+$")


def normalize_origin(origin: Optional[str]) -> str:
    """
    Reduce an origin to a comparable host form.

    ``"https://www.Example.com:8080/"`` becomes ``"example.com"``.
    """
    if not origin:
        return ""
    value = origin.strip().lower()
    value = _SCHEME_RE.sub("", value)
    value = value.split("/", 1)[0]
    if value.startswith("www."):
        value = value[4:]
    return _PORT_RE.sub("", value)


class OriginPolicy:
    """Allow-list based origin checks with development and bypass rules."""

    def __init__(
        self,
        settings: AppSettings,
        allowed_origins: Iterable[str] = ALLOWED_ORIGINS,
        trusted_domains: Sequence[str] = TRUSTED_DOMAINS,
    ):
        self.settings = settings
        self.allowed_origins = tuple(o for o in allowed_origins if o != WILDCARD_ORIGIN)
        self.trusted_domains = tuple(d.lower() for d in trusted_domains)
        self._normalized_allow_list = frozenset(
            normalize_origin(o) for o in self.allowed_origins
        )
        if settings.bypass_origin_check:
            logger.warning("Origin bypass is enabled: every origin will be accepted")

    def is_allowed(self, origin: Optional[str]) -> bool:
        """Check an inbound message origin."""
        return self._decide(origin, "inbound")

    def is_safe_target(self, origin: Optional[str]) -> bool:
        """Check an outbound target origin."""
        return self._decide(origin, "outbound")

    def is_trusted_domain(self, origin: Optional[str]) -> bool:
        """Whether the origin's host is, or is a subdomain of, a trusted root."""
        host = normalize_origin(origin)
        if not host:
            return False
        return any(host == root or host.endswith("." + root) for root in self.trusted_domains)

    def is_dev_local(self, origin: Optional[str]) -> bool:
        """Rule 2: development context with an empty or localhost origin."""
        if not self.settings.is_development:
            return False
        return not origin or "localhost" in origin.lower()

    def _evaluate(self, origin: Optional[str]) -> Tuple[bool, str]:
        if self.settings.bypass_origin_check:
            return True, "bypass"
        if self.is_dev_local(origin):
            return True, "development"
        if not origin or origin == WILDCARD_ORIGIN:
            return False, "empty-or-wildcard"
        if normalize_origin(origin) in self._normalized_allow_list:
            return True, "allow-list"
        if self.is_trusted_domain(origin):
            return True, "trusted-domain"
        return False, "not-listed"

    def _decide(self, origin: Optional[str], direction: str) -> bool:
        allowed, rule = self._evaluate(origin)
        raw = origin if origin else "<empty>"
        if rule == "bypass":
            logger.warning(f"[OriginPolicy] {direction} origin {raw} allowed by bypass flag")
        elif allowed:
            logger.debug(f"[OriginPolicy] {direction} origin {raw} allowed ({rule})")
        else:
            logger.warning(f"[OriginPolicy] {direction} origin {raw} rejected ({rule})")
        return allowed
