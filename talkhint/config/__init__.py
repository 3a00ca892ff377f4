"""
Configuration module for TalkHint.

This module provides centralized configuration management for the entire
application, including constants, logging setup, and environment-based and
persisted user configuration.

Key components:
- constants: application-wide constants such as the origin allow-list, proxy
  endpoint URLs, retry defaults and frame message types.
- logging_config: console and rotating file logging, plus secret masking.
- settings: AppSettings read from the environment, the user-tunable
  RequestConfig, settings stores and the ConfigManager that owns them.

Usage examples:
```python
from talkhint.config.logging_config import configure_logging
logger = configure_logging()

from talkhint.config.settings import AppSettings, ConfigManager
settings = AppSettings.from_env()
config_manager = ConfigManager(settings)
config_manager.set_response_style("formal")
```
"""

# Config module initialization
