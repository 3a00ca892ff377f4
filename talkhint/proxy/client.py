"""
Resilient client for chat-completion requests through the proxy endpoints.

UpstreamRequestClient issues one logical completion request as a strictly
sequential series of attempts. Each attempt runs under its own timeout;
failures are converted into the typed upstream errors, followed by an
exponential backoff and optionally a rotation to the next proxy endpoint.
When every attempt has failed the caller still gets a CompletionResult: a
deterministic mock tagged with ``mock=True``.

The only error that escapes ``call`` is ConfigurationError, raised before
any network traffic when no request could possibly be authorized.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import httpx

from talkhint.config.constants import (
    BACKOFF_BASE_SECONDS,
    BACKOFF_CAP_SECONDS,
    CHAT_COMPLETIONS_PATH,
    DEFAULT_MODEL,
    HEALTH_PATH,
    LOGGER_NAME,
    SIMPLE_CHAT_PATH,
)
from talkhint.config.logging_config import mask_secret
from talkhint.config.settings import ConfigManager, RequestConfig
from talkhint.errors import (
    MalformedResponse,
    UpstreamError,
    UpstreamHttpError,
    UpstreamNetworkError,
    UpstreamTimeout,
)
from talkhint.models.completion_schemas import ChatMessage, CompletionRequest, CompletionResult
from talkhint.models.message_schemas import utc_timestamp
from talkhint.proxy.endpoints import ProxyEndpoint, ProxyEndpointRegistry

logger = logging.getLogger(LOGGER_NAME)

MessageLike = Union[ChatMessage, Dict[str, Any]]
Sleep = Callable[[float], Awaitable[None]]


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def last_user_content(messages: Sequence[Dict[str, Any]]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return str(message.get("content", ""))
    return ""


def mock_completion(messages: Sequence[Dict[str, Any]], n: int = 1,
                    request_id: Optional[str] = None) -> CompletionResult:
    """Deterministic stand-in result derived from the last user message."""
    text = last_user_content(messages)
    content = f'Mock response for: "{text}" (upstream unavailable)'
    return CompletionResult.from_contents([content] * max(1, n), mock=True, request_id=request_id)


class UpstreamRequestClient:
    """
    Sends chat-completion requests through the proxy endpoint chain.

    Args:
        config_manager: Source of the current RequestConfig
        registry: Shared proxy endpoint registry
        http_client: Optional httpx.AsyncClient; one is created and owned otherwise
        page_origin: Sent as the Origin header for server-side diagnostics
        model: Model name placed in every payload
        rotate_on_failure: Rotate to the next proxy endpoint before each retry
        sleep: Awaitable used for backoff delays
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        registry: ProxyEndpointRegistry,
        http_client: Optional[httpx.AsyncClient] = None,
        page_origin: str = "",
        model: str = DEFAULT_MODEL,
        backoff_base: float = BACKOFF_BASE_SECONDS,
        backoff_cap: float = BACKOFF_CAP_SECONDS,
        rotate_on_failure: bool = True,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config_manager = config_manager
        self.registry = registry
        self._client = http_client
        self._owns_client = http_client is None
        self.page_origin = page_origin
        self.model = model
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.rotate_on_failure = rotate_on_failure
        self._sleep = sleep
        self.last_attempts = 0

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based attempt."""
        return min(self.backoff_base * (2 ** attempt), self.backoff_cap)

    def _select_endpoint(self, config: RequestConfig) -> ProxyEndpoint:
        if config.use_server_proxy:
            return self.registry.current()
        return self.registry.direct()

    def _headers(self, config: RequestConfig) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.page_origin:
            headers["Origin"] = self.page_origin
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        return headers

    async def call(
        self,
        messages: Sequence[MessageLike],
        temperature: float = 1.0,
        max_tokens: int = 150,
        n: int = 1,
    ) -> CompletionResult:
        """
        Request a completion, retrying and degrading to a mock result.

        Args:
            messages: Role-tagged conversation messages
            temperature: Sampling temperature
            max_tokens: Completion length limit
            n: Number of parallel choices

        Returns:
            CompletionResult: The upstream result, or a mock tagged ``mock=True``

        Raises:
            ConfigurationError: When the proxy is disabled and no API key is set
        """
        self.config_manager.ensure_credentials()
        config = self.config_manager.config
        request_id = new_request_id()
        payload = CompletionRequest(
            model=self.model,
            messages=[m if isinstance(m, ChatMessage) else ChatMessage(**m) for m in messages],
            temperature=temperature,
            max_tokens=max_tokens,
            n=n,
        ).model_dump(mode="json")

        logger.info(
            f"[{request_id}] Completion request starting: model={self.model} n={n} "
            f"proxy={config.use_server_proxy} key={mask_secret(config.api_key)}"
        )

        malformed_seen = False
        self.last_attempts = 0
        for attempt in range(config.max_retries + 1):
            endpoint = self._select_endpoint(config)
            self.last_attempts += 1
            if attempt > 0:
                logger.info(f"[{request_id}] Retry attempt {attempt}/{config.max_retries}")
            try:
                return await self._attempt(request_id, endpoint, payload, config)
            except MalformedResponse as e:
                logger.error(f"[{request_id}] Malformed response from {e.endpoint}: {e}")
                if malformed_seen:
                    break
                malformed_seen = True
            except UpstreamError as e:
                logger.error(f"[{request_id}] {type(e).__name__} from {e.endpoint}: {e}")

            if attempt < config.max_retries:
                if self.rotate_on_failure and config.use_server_proxy:
                    self.registry.rotate()
                delay = self.backoff_delay(attempt)
                logger.info(f"[{request_id}] Backing off for {delay:.1f}s before retry")
                await self._sleep(delay)

        logger.warning(
            f"[{request_id}] Upstream unavailable after {self.last_attempts} attempts, "
            f"returning mock completion"
        )
        return mock_completion(payload["messages"], n, request_id)

    async def _attempt(
        self,
        request_id: str,
        endpoint: ProxyEndpoint,
        payload: Dict[str, Any],
        config: RequestConfig,
    ) -> CompletionResult:
        url = self.registry.build_url(endpoint, CHAT_COMPLETIONS_PATH)
        logger.debug(f"[{request_id}] POST {url} ({endpoint.kind.value})")
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.http_client.post(url, json=payload, headers=self._headers(config)),
                timeout=config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise UpstreamTimeout(
                f"Request timed out after {config.timeout_ms}ms", request_id, url
            ) from None
        except httpx.HTTPError as e:
            raise UpstreamNetworkError(f"Network error: {e}", request_id, url) from e
        except Exception as e:
            # Unusable URLs surface as plain ValueError and friends
            raise UpstreamNetworkError(f"Request failed: {e}", request_id, url) from e

        if not response.is_success:
            body = response.text
            logger.error(f"[{request_id}] HTTP {response.status_code} from {url}: {body[:500]}")
            raise UpstreamHttpError(response.status_code, body, request_id, url)

        try:
            result = CompletionResult.from_payload(response.json(), request_id)
        except ValueError as e:
            raise MalformedResponse(str(e), request_id, url) from e

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"[{request_id}] Completion received from {endpoint.kind.value} in {elapsed_ms:.0f}ms "
            f"with {len(result.choices)} choice(s)"
        )
        return result

    async def simple_chat(self, message: str) -> Dict[str, Any]:
        """Post a plain message to the self-hosted proxy's chat route."""
        request_id = new_request_id()
        url = self.registry.build_url(self.registry.self_hosted(), SIMPLE_CHAT_PATH)
        config = self.config_manager.config
        logger.info(f"[{request_id}] Simple chat request to {url}: {message[:30]}")
        try:
            response = await asyncio.wait_for(
                self.http_client.post(url, json={"message": message}, headers=self._headers(config)),
                timeout=config.timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except (asyncio.TimeoutError, httpx.HTTPError, ValueError) as e:
            logger.error(f"[{request_id}] Simple chat failed, returning mock: {e}")
            return {
                "success": True,
                "received": message,
                "response": f'Mock response for: "{message}" (server unavailable)',
                "timestamp": utc_timestamp(),
            }

    async def check_health(self) -> Optional[Dict[str, Any]]:
        """GET the self-hosted proxy's health route; None when unreachable."""
        url = self.registry.build_url(self.registry.self_hosted(), HEALTH_PATH)
        try:
            response = await asyncio.wait_for(self.http_client.get(url), timeout=10.0)
            response.raise_for_status()
            return response.json()
        except (asyncio.TimeoutError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Proxy health check failed for {url}: {e}")
            return None
