import logging

import httpx
import pytest

from talkhint.config.settings import AppSettings, ConfigManager, InMemorySettingsStore
from talkhint.proxy.client import UpstreamRequestClient
from talkhint.proxy.endpoints import ProxyEndpointRegistry

VALID_KEY = "sk-test-0123456789abcdefghijklmnopqrstuv"


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def prod_settings():
    return AppSettings(environment="production", page_origin="https://lovable.dev")


@pytest.fixture
def dev_settings():
    return AppSettings(environment="development", page_origin="http://localhost:5173")


@pytest.fixture
def config_manager(prod_settings):
    return ConfigManager(prod_settings, InMemorySettingsStore())


@pytest.fixture
def registry(config_manager):
    return ProxyEndpointRegistry.from_config(config_manager)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler):
        self.requests = []

        def recording(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(recording)


async def no_sleep(delay):
    return None


@pytest.fixture
def make_upstream(config_manager, registry):
    """Build an UpstreamRequestClient whose HTTP traffic is served by a handler."""

    def factory(handler, **kwargs):
        transport = RecordingTransport(handler)
        client = UpstreamRequestClient(
            config_manager,
            registry,
            http_client=httpx.AsyncClient(transport=transport),
            page_origin="https://lovable.dev",
            sleep=kwargs.pop("sleep", no_sleep),
            **kwargs,
        )
        return client, transport

    return factory


def completion_body(*contents):
    return {
        "id": "chatcmpl-test",
        "model": "gpt-4o-mini",
        "choices": [
            {"index": i, "message": {"role": "assistant", "content": c}, "finish_reason": "stop"}
            for i, c in enumerate(contents)
        ],
    }
