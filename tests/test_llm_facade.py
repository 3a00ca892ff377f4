import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from talkhint.errors import ConfigurationError
from talkhint.llm.facade import LLMFacade
from talkhint.llm.mocks import (
    DEFAULT_SUGGESTIONS,
    contains_keyword,
    mock_bilingual_responses,
    mock_suggestions,
    mock_translation,
)
from talkhint.llm.prompts import get_system_prompt, get_translation_prompt
from talkhint.models.completion_schemas import CompletionResult

from tests.conftest import completion_body

GREETING_MOCKS = [
    "Здравствуйте! Чем я могу вам помочь?",
    "Добрый день! Рад вас слышать.",
    "Приветствую! Как ваши дела?",
]


def unreachable(request):
    raise httpx.ConnectError("connection refused")


@pytest.fixture
def offline_facade(make_upstream, config_manager):
    client, _ = make_upstream(unreachable)
    return LLMFacade(client, config_manager)


@pytest.fixture
def stub_client():
    client = MagicMock()
    client.call = AsyncMock()
    return client


@pytest.fixture
def stub_facade(stub_client, config_manager):
    return LLMFacade(stub_client, config_manager)


# Offline tables


def test_keyword_matches_at_word_start():
    assert contains_keyword("Well, HELLO there", "hello")
    assert contains_keyword("Привет, как дела", "привет")
    assert not contains_keyword("othello", "hello")


def test_mock_tables():
    assert mock_suggestions("спасибо большое").suggestions[0] == "Всегда пожалуйста! Есть ли еще вопросы?"
    assert mock_suggestions("something else").suggestions == DEFAULT_SUGGESTIONS
    bilingual = mock_bilingual_responses("Do you have a CDL?")
    assert bilingual.mock
    assert bilingual.responses[0].primary.startswith("Yes, I have a CDL")
    assert mock_translation("Привет, друг", "ru", "en").translation == "Hello"
    assert mock_translation("Good morning", "en", "ru").translation == (
        "Это тестовый перевод с английского на русский"
    )
    assert mock_translation("Hola", "es", "fr").translation == "Mock translation from es to fr: Hola"


def test_prompts():
    assert "формальными" in get_system_prompt("formal")
    assert get_system_prompt("unknown-style").endswith("Ответы должны быть простыми и дружелюбными.")
    assert "с английский на русский" in get_translation_prompt("en", "ru")


# Offline degradation through the real client


@pytest.mark.asyncio
async def test_greeting_suggestions_are_deterministic_offline(offline_facade):
    first = await offline_facade.get_suggestions("hello, is this the dispatcher?")
    second = await offline_facade.get_suggestions("hello, is this the dispatcher?")

    assert first.mock is True
    assert first.suggestions == GREETING_MOCKS
    assert second.suggestions == first.suggestions


@pytest.mark.asyncio
async def test_translate_hello_offline(offline_facade):
    result = await offline_facade.get_translation("hello", "en", "ru")
    assert result.translation == "Привет"
    assert result.mock is True


@pytest.mark.asyncio
async def test_bilingual_offline(offline_facade):
    result = await offline_facade.get_bilingual_responses("When can you start?")
    assert result.mock is True
    assert result.responses[0].primary == "I can start right away, as soon as tomorrow."


@pytest.mark.asyncio
async def test_configuration_error_reaches_caller(offline_facade, config_manager):
    config_manager.set_use_server_proxy(False)
    with pytest.raises(ConfigurationError):
        await offline_facade.get_suggestions("hello")


# Upstream answers


@pytest.mark.asyncio
async def test_suggestions_from_upstream(make_upstream, config_manager):
    client, transport = make_upstream(
        lambda request: httpx.Response(200, json=completion_body("One.", " Two. ", "Three."))
    )
    facade = LLMFacade(client, config_manager)
    config_manager.set_response_style("formal")

    result = await facade.get_suggestions("How much is it?")

    assert result.mock is False
    assert result.suggestions == ["One.", "Two.", "Three."]
    body = json.loads(transport.requests[0].content)
    assert body["n"] == 3
    assert body["messages"][0]["role"] == "system"
    assert "формальными" in body["messages"][0]["content"]
    assert body["messages"][1] == {"role": "user", "content": "How much is it?"}


@pytest.mark.asyncio
async def test_empty_suggestions_retried(stub_facade, stub_client):
    stub_client.call.side_effect = [
        CompletionResult.from_contents(["", "   "]),
        CompletionResult.from_contents(["Real answer."]),
    ]
    result = await stub_facade.get_suggestions("hello")
    assert result.suggestions == ["Real answer."]
    assert stub_client.call.await_count == 2
    kwargs = stub_client.call.await_args.kwargs
    assert kwargs == {"temperature": 1.0, "max_tokens": 150, "n": 3}


@pytest.mark.asyncio
async def test_empty_suggestions_fall_back_after_retry(stub_facade, stub_client):
    stub_client.call.return_value = CompletionResult.from_contents([""])
    result = await stub_facade.get_suggestions("hello")
    assert result.mock is True
    assert result.suggestions == GREETING_MOCKS


@pytest.mark.asyncio
async def test_unexpected_error_degrades(stub_facade, stub_client):
    stub_client.call.side_effect = RuntimeError("boom")
    result = await stub_facade.get_translation("hello", "en", "ru")
    assert result.translation == "Привет"
    assert result.mock is True


@pytest.mark.asyncio
async def test_bilingual_from_upstream(stub_facade, stub_client):
    stub_client.call.return_value = CompletionResult.from_contents(
        ["1. Yes.\n(Да.)\n2. No.\n(Нет.)\n3. Maybe.\n(Может быть.)"]
    )
    result = await stub_facade.get_bilingual_responses("Do you drive at night?")
    assert result.mock is False
    assert [(p.primary, p.secondary) for p in result.responses] == [
        ("Yes.", "Да."),
        ("No.", "Нет."),
        ("Maybe.", "Может быть."),
    ]
    assert stub_client.call.await_args.kwargs == {"temperature": 1.0, "max_tokens": 500, "n": 1}


@pytest.mark.asyncio
async def test_unparseable_bilingual_falls_back(stub_facade, stub_client):
    stub_client.call.return_value = CompletionResult.from_contents(["I don't know."])
    result = await stub_facade.get_bilingual_responses("What salary do you expect?")
    assert result.mock is True
    assert result.responses[0].primary == "What is the pay rate for this position?"
    assert stub_client.call.await_count == 2


@pytest.mark.asyncio
async def test_translation_is_trimmed(stub_facade, stub_client):
    stub_client.call.return_value = CompletionResult.from_contents(["  Как дела?\n"])
    result = await stub_facade.get_translation("How are you?", "en", "ru")
    assert result.translation == "Как дела?"
    assert result.mock is False
    assert stub_client.call.await_args.kwargs == {"temperature": 0.3, "max_tokens": 1000, "n": 1}
