"""
Proxy module for reaching the upstream completion API.

Key components:
- endpoints: ProxyEndpointRegistry, the ordered list of interchangeable proxy
  endpoints with round-robin failover and idempotent URL building.
- client: UpstreamRequestClient, which runs one completion request as a series
  of timed attempts with exponential backoff and a mock fallback.

Usage examples:
```python
from talkhint.config.settings import AppSettings, ConfigManager
from talkhint.proxy.client import UpstreamRequestClient
from talkhint.proxy.endpoints import ProxyEndpointRegistry

config_manager = ConfigManager(AppSettings())
registry = ProxyEndpointRegistry.from_config(config_manager)
client = UpstreamRequestClient(config_manager, registry)

result = await client.call([{"role": "user", "content": "Hello"}])
if result.mock:
    print("Upstream unavailable, showing offline replies")
```
"""
