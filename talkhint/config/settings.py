"""
Runtime configuration for TalkHint.

Two layers live here:

- AppSettings: process-level settings read once from the environment at
  startup (environment mode, origin bypass flag, page origin, server
  credential, messaging limits).
- ConfigManager: the user-tunable RequestConfig (API key, response style,
  proxy selection). It reads and writes a SettingsStore through explicit
  getters and setters and notifies subscribers on every change, so dependent
  components (the proxy registry, for instance) never need to poke at its
  fields directly.
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

from talkhint.config.constants import (
    DEFAULT_DEDUPE_CAPACITY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MODEL,
    DEFAULT_RATE_LIMIT_PER_SECOND,
    DEFAULT_RESPONSE_STYLE,
    DEFAULT_TIMEOUT_MS,
    LOCAL_PROXY_URL,
    LOGGER_NAME,
    RESPONSE_STYLES,
    STORAGE_KEY_API_KEY,
    STORAGE_KEY_DEBUG_MODE,
    STORAGE_KEY_RESPONSE_STYLE,
    STORAGE_KEY_SERVER_PROXY_URL,
    STORAGE_KEY_USE_SERVER_PROXY,
)
from talkhint.config.logging_config import mask_secret
from talkhint.errors import ConfigurationError

logger = logging.getLogger(LOGGER_NAME)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def is_valid_api_key(key: Optional[str]) -> bool:
    """Check that a key looks like an OpenAI secret key."""
    if not key:
        return False
    trimmed = key.strip()
    return trimmed.startswith("sk-") and len(trimmed) >= 32


def is_valid_url(url: Optional[str]) -> bool:
    """Check that a string parses as an absolute http(s) URL."""
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def ensure_url_protocol(url: str) -> str:
    """Prefix https:// when a URL has no scheme."""
    if not url:
        return url
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"https://{url}"


def proxy_url_or_default(url: Optional[str], source: str) -> str:
    """Normalize a proxy base URL, falling back to the local proxy when it is unusable."""
    clean = ensure_url_protocol((url or "").strip())
    if is_valid_url(clean):
        return clean
    logger.warning(f"Ignoring invalid proxy URL {url!r} from {source}, using {LOCAL_PROXY_URL}")
    return LOCAL_PROXY_URL


def response_style_or_default(style: Optional[str], source: str) -> str:
    if style in RESPONSE_STYLES:
        return style
    logger.warning(
        f"Ignoring unknown response style {style!r} from {source}, using {DEFAULT_RESPONSE_STYLE}"
    )
    return DEFAULT_RESPONSE_STYLE


class Environment(str, Enum):
    """Deployment mode of the running process."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class AppSettings(BaseModel):
    """Process-wide settings, constructed once at startup."""

    environment: Environment = Environment.PRODUCTION
    bypass_origin_check: bool = Field(
        False, description="Accept every origin. Test harnesses only."
    )
    page_origin: str = Field(
        "", description="Origin of the page this process serves"
    )
    openai_api_key: Optional[str] = Field(None, description="Server-held credential")
    model: str = DEFAULT_MODEL
    server_proxy_url: str = LOCAL_PROXY_URL
    use_server_proxy: bool = True
    response_style: str = DEFAULT_RESPONSE_STYLE
    max_retries: int = Field(DEFAULT_MAX_RETRIES, ge=0)
    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, gt=0)
    dedupe_capacity: int = Field(DEFAULT_DEDUPE_CAPACITY, gt=0)
    rate_limit_per_second: int = Field(DEFAULT_RATE_LIMIT_PER_SECOND, gt=0)
    debug_mode: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("page_origin")
    def validate_page_origin(cls, v):
        """Page origin must carry a scheme so its hostname can be extracted."""
        return ensure_url_protocol(v.strip().rstrip("/"))

    @field_validator("server_proxy_url")
    def validate_server_proxy_url(cls, v):
        return proxy_url_or_default(v, "settings")

    @field_validator("response_style")
    def validate_response_style(cls, v):
        return response_style_or_default(v, "settings")

    @model_validator(mode="after")
    def forbid_bypass_in_production(self):
        """The origin bypass is a test-harness switch and never ships."""
        if self.bypass_origin_check and self.environment == Environment.PRODUCTION:
            raise ValueError("bypass_origin_check cannot be enabled in production")
        return self

    @property
    def page_hostname(self) -> str:
        return (urlparse(self.page_origin).hostname or "").lower()

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Explicit development mode, or a page served from localhost."""
        return self.environment == Environment.DEVELOPMENT or self.page_hostname == "localhost"

    @property
    def allows_wildcard_fallback(self) -> bool:
        """Whether a rejected or failed send may retry with the wildcard origin."""
        if self.is_production:
            return False
        return self.bypass_origin_check or self.is_development

    @classmethod
    def from_env(cls) -> "AppSettings":
        """Build settings from environment variables."""
        return cls(
            environment=os.getenv("TALKHINT_ENV", Environment.PRODUCTION.value).lower(),
            bypass_origin_check=_env_flag("BYPASS_ORIGIN_CHECK"),
            page_origin=os.getenv("PAGE_ORIGIN", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            server_proxy_url=os.getenv("SERVER_PROXY_URL", LOCAL_PROXY_URL),
            use_server_proxy=_env_flag("USE_SERVER_PROXY", True),
            response_style=os.getenv("RESPONSE_STYLE", DEFAULT_RESPONSE_STYLE),
            max_retries=int(os.getenv("MAX_RETRIES", str(DEFAULT_MAX_RETRIES))),
            timeout_ms=int(os.getenv("REQUEST_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
            dedupe_capacity=int(os.getenv("DEDUPE_CAPACITY", str(DEFAULT_DEDUPE_CAPACITY))),
            rate_limit_per_second=int(
                os.getenv("RATE_LIMIT_PER_SECOND", str(DEFAULT_RATE_LIMIT_PER_SECOND))
            ),
            debug_mode=_env_flag("DEBUG_MODE"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )


class RequestConfig(BaseModel):
    """User-tunable settings read by every upstream call."""

    api_key: Optional[str] = None
    response_style: str = DEFAULT_RESPONSE_STYLE
    use_server_proxy: bool = True
    server_proxy_url: str = LOCAL_PROXY_URL
    max_retries: int = Field(DEFAULT_MAX_RETRIES, ge=0)
    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, gt=0)
    debug_mode: bool = False

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


# Settings stores


class SettingsStore:
    """Minimal key-value store interface for persisted user settings."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemorySettingsStore(SettingsStore):
    """Settings store backed by a dict, used by tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileSettingsStore(SettingsStore):
    """Settings store persisted as a flat JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                loaded = json.load(fh)
            if isinstance(loaded, dict):
                self._data = {str(k): str(v) for k, v in loaded.items()}
            else:
                logger.warning(f"Ignoring settings file {self.path}: not a JSON object")
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read settings file {self.path}: {e}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(self._data, fh, ensure_ascii=False, indent=2)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()


ConfigListener = Callable[[str, Any], None]


class ConfigManager:
    """
    Single source of truth for the user-tunable RequestConfig.

    Values are loaded from the SettingsStore (falling back to AppSettings
    defaults) and every setter writes through to the store before notifying
    subscribers with ``(field_name, new_value)``.
    """

    def __init__(self, settings: AppSettings, store: Optional[SettingsStore] = None):
        self.settings = settings
        self.store = store or InMemorySettingsStore()
        self._listeners: List[ConfigListener] = []
        self._config = self._load()

    def _load(self) -> RequestConfig:
        api_key = self.store.get(STORAGE_KEY_API_KEY)
        if api_key and not is_valid_api_key(api_key):
            logger.warning(f"Stored API key has invalid format: {mask_secret(api_key)}")
            api_key = None

        use_proxy = self.store.get(STORAGE_KEY_USE_SERVER_PROXY)
        debug_mode = self.store.get(STORAGE_KEY_DEBUG_MODE)

        config = RequestConfig(
            api_key=api_key,
            response_style=self._stored_response_style(),
            use_server_proxy=self.settings.use_server_proxy
            if use_proxy is None
            else use_proxy == "true",
            server_proxy_url=self._stored_proxy_url(),
            max_retries=self.settings.max_retries,
            timeout_ms=self.settings.timeout_ms,
            debug_mode=self.settings.debug_mode if debug_mode is None else debug_mode == "true",
        )
        logger.info(
            f"Request config loaded: proxy={config.use_server_proxy} "
            f"url={config.server_proxy_url} style={config.response_style} "
            f"key={mask_secret(config.api_key)}"
        )
        return config

    def _stored_response_style(self) -> str:
        style = self.store.get(STORAGE_KEY_RESPONSE_STYLE)
        if style is None:
            return self.settings.response_style
        return response_style_or_default(style, "settings store")

    def _stored_proxy_url(self) -> str:
        url = self.store.get(STORAGE_KEY_SERVER_PROXY_URL)
        if not url:
            return self.settings.server_proxy_url
        return proxy_url_or_default(url, "settings store")

    @property
    def config(self) -> RequestConfig:
        """A copy of the current config; mutate through the setters."""
        return self._config.model_copy()

    def subscribe(self, listener: ConfigListener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, field: str, value: Any) -> None:
        self._config = self._config.model_copy(update={field: value})
        for listener in list(self._listeners):
            try:
                listener(field, value)
            except Exception as e:
                logger.error(f"Config listener failed for {field}: {e}", exc_info=True)

    def get_api_key(self) -> Optional[str]:
        return self._config.api_key

    def set_api_key(self, key: Optional[str]) -> None:
        clean = (key or "").strip()
        if not clean:
            self.store.delete(STORAGE_KEY_API_KEY)
            self._update("api_key", None)
            logger.info("API key cleared")
            return
        if not is_valid_api_key(clean):
            raise ConfigurationError(f"Invalid API key format: {mask_secret(clean)}")
        self.store.set(STORAGE_KEY_API_KEY, clean)
        self._update("api_key", clean)
        logger.info(f"API key saved: {mask_secret(clean)}")

    def get_response_style(self) -> str:
        return self._config.response_style

    def set_response_style(self, style: str) -> None:
        if style not in RESPONSE_STYLES:
            raise ConfigurationError(
                f"Unknown response style {style!r}, expected one of {', '.join(RESPONSE_STYLES)}"
            )
        self.store.set(STORAGE_KEY_RESPONSE_STYLE, style)
        self._update("response_style", style)

    def get_use_server_proxy(self) -> bool:
        return self._config.use_server_proxy

    def set_use_server_proxy(self, use_proxy: bool) -> None:
        self.store.set(STORAGE_KEY_USE_SERVER_PROXY, "true" if use_proxy else "false")
        self._update("use_server_proxy", bool(use_proxy))
        logger.info(f"Server proxy {'enabled' if use_proxy else 'disabled'}")

    def get_server_proxy_url(self) -> str:
        return self._config.server_proxy_url

    def set_server_proxy_url(self, url: str) -> None:
        clean = ensure_url_protocol(url.strip())
        if not is_valid_url(clean):
            raise ConfigurationError(f"Invalid proxy URL: {url!r}")
        self.store.set(STORAGE_KEY_SERVER_PROXY_URL, clean)
        self._update("server_proxy_url", clean)
        logger.info(f"Server proxy URL set to {clean}")

    def get_debug_mode(self) -> bool:
        return self._config.debug_mode

    def set_debug_mode(self, enabled: bool) -> None:
        self.store.set(STORAGE_KEY_DEBUG_MODE, "true" if enabled else "false")
        self._update("debug_mode", bool(enabled))

    def ensure_credentials(self) -> None:
        """
        Raise ConfigurationError when no request could ever be authorized.

        With the server proxy enabled the proxy supplies its own credential,
        so a missing client key is fine.
        """
        if not self._config.use_server_proxy and not self._config.api_key:
            raise ConfigurationError(
                "OpenAI API key is not set and the server proxy is disabled"
            )
