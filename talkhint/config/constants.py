"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "talkhint"

# Default model for chat completions
DEFAULT_MODEL = "gpt-4o-mini"

# Upstream completion API
OPENAI_API_BASE = "https://api.openai.com/v1"
OPENAI_CHAT_COMPLETIONS_URL = f"{OPENAI_API_BASE}/chat/completions"

# Logical paths used when building proxy URLs
CHAT_COMPLETIONS_PATH = "/chat/completions"
LOCAL_PROXY_PREFIX = "/openai"
SIMPLE_CHAT_PATH = "/chat"
HEALTH_PATH = "/health"

# Retry and timeout defaults
DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT_MS = 60000
BACKOFF_BASE_SECONDS = 1.0
BACKOFF_CAP_SECONDS = 10.0

# Cross-frame messaging limits (tunable, see AppSettings)
DEFAULT_DEDUPE_CAPACITY = 200
DEDUPE_EVICTION_FRACTION = 0.25
DEFAULT_RATE_LIMIT_PER_SECOND = 30
RATE_WINDOW_SECONDS = 1.0

# Wildcard target origin for postMessage-style delivery
WILDCARD_ORIGIN = "*"

# Static origin allow-list
ALLOWED_ORIGINS = [
    "https://lovable.dev",
    "https://www.lovable.dev",
    "http://lovable.dev",
    "http://www.lovable.dev",
    "https://id-preview--be5c3e65-2457-46cb-a8e0-02444f6fdcc1.lovable.app",
    "https://id-preview--be5c3e65-2457-46cb-a8e0-02444f6fdcc1.lovable.app:3000",
    "https://gptengineer.app",
    "https://www.gptengineer.app",
    "http://gptengineer.app",
    "http://www.gptengineer.app",
    "https://gptengineer.io",
    "https://www.gptengineer.io",
    "http://gptengineer.io",
    "http://www.gptengineer.io",
    "http://localhost:8080",
    "https://localhost:8080",
    "http://localhost:5173",
    "https://localhost:5173",
    "http://localhost:3000",
    "https://localhost:3000",
    "http://localhost",
    "https://localhost",
    "https://lovable-server.vercel.app",
    "http://lovable-server.vercel.app",
]

# Root domains whose subdomains are trusted as a family
TRUSTED_DOMAINS = (
    "lovable.app",
    "gptengineer.app",
    "lovable-server.vercel.app",
)

# Proxy endpoints, in rotation order after the self-hosted server
VENDOR_A_PROXY_URL = "https://talkhint-sergs-projects-149ff317.vercel.app/api"
VENDOR_B_PROXY_URL = "https://vsl-proxy.vercel.app/api"
VENDOR_C_PROXY_URL = "https://corsproxy.io/?https://api.openai.com/v1"
LOCAL_PROXY_URL = "http://localhost:3000/api"

# Settings store keys
STORAGE_KEY_API_KEY = "openai_api_key"
STORAGE_KEY_RESPONSE_STYLE = "response_style"
STORAGE_KEY_USE_SERVER_PROXY = "use_server_proxy"
STORAGE_KEY_SERVER_PROXY_URL = "server_proxy_url"
STORAGE_KEY_DEBUG_MODE = "debug_mode"

# Response styles understood by the prompt builder
RESPONSE_STYLES = ("casual", "formal", "professional", "empathetic")
DEFAULT_RESPONSE_STYLE = "casual"

# Cross-frame message types
MESSAGE_TYPE_IFRAME_READY = "IFRAME_READY"
MESSAGE_TYPE_IFRAME_LOADED = "IFRAME_LOADED"
MESSAGE_TYPE_IFRAME_ACK = "IFRAME_ACK"
MESSAGE_TYPE_IFRAME_RESPONSE = "IFRAME_RESPONSE"
MESSAGE_TYPE_TEST = "TEST"
MESSAGE_TYPE_CROSS_ORIGIN_TEST = "CROSS_ORIGIN_TEST"
MESSAGE_TYPE_ERROR_REPORT = "ERROR_REPORT"
MESSAGE_TYPE_DEBUG = "DEBUG"
MESSAGE_TYPE_PING = "PING"
MESSAGE_TYPE_PONG = "PONG"
