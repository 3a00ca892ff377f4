"""
High-level completion operations used by the conversation UI.

LLMFacade turns a heard utterance into reply suggestions, bilingual reply
pairs, or a translation. Every operation builds a system plus user message
list, calls the UpstreamRequestClient and parses the result. Any failure
past configuration (a mock completion, an empty or unparseable answer, an
unexpected exception) degrades to the keyword-keyed offline result for that
operation, with the reason logged. ConfigurationError is the one exception
that reaches the caller.
"""

import logging
from typing import List, Optional

from talkhint.config.constants import LOGGER_NAME
from talkhint.config.settings import ConfigManager
from talkhint.errors import ConfigurationError
from talkhint.llm.mocks import mock_bilingual_responses, mock_suggestions, mock_translation
from talkhint.llm.parsers import extract_bilingual_pairs
from talkhint.llm.prompts import get_bilingual_prompt, get_system_prompt, get_translation_prompt
from talkhint.models.completion_schemas import (
    BilingualResult,
    ChatMessage,
    CompletionResult,
    MessageRole,
    SuggestionsResult,
    TranslationResult,
)
from talkhint.proxy.client import UpstreamRequestClient

logger = logging.getLogger(LOGGER_NAME)

SUGGESTION_COUNT = 3


def build_messages(system_prompt: str, user_content: str) -> List[ChatMessage]:
    return [
        ChatMessage(role=MessageRole.SYSTEM, content=system_prompt),
        ChatMessage(role=MessageRole.USER, content=user_content),
    ]


class LLMFacade:
    """
    Suggestions, bilingual replies and translation on top of the upstream client.

    Args:
        client: The resilient upstream client
        config_manager: Source of the response style
        empty_retries: Extra calls made when an answer holds no usable text
    """

    def __init__(self, client: UpstreamRequestClient, config_manager: ConfigManager,
                 empty_retries: int = 1):
        self.client = client
        self.config_manager = config_manager
        self.empty_retries = empty_retries

    async def _complete(self, messages: List[ChatMessage], temperature: float,
                        max_tokens: int, n: int) -> Optional[CompletionResult]:
        """Call upstream; None means degrade to the offline result."""
        try:
            return await self.client.call(messages, temperature=temperature,
                                          max_tokens=max_tokens, n=n)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Completion call failed unexpectedly: {e}", exc_info=True)
            return None

    async def get_suggestions(self, text: str) -> SuggestionsResult:
        """
        Three short reply suggestions for an utterance.

        Args:
            text: What the other party said

        Returns:
            SuggestionsResult: Upstream suggestions, or the keyword-keyed mock set
        """
        style = self.config_manager.get_response_style()
        messages = build_messages(get_system_prompt(style), text)
        logger.info(f"Requesting suggestions (style={style}) for: {text[:80]}")

        for attempt in range(self.empty_retries + 1):
            result = await self._complete(messages, 1.0, 150, SUGGESTION_COUNT)
            if result is None or result.mock:
                logger.warning("Suggestions unavailable upstream, using offline suggestions")
                return mock_suggestions(text)
            suggestions = result.contents()
            if suggestions:
                return SuggestionsResult(suggestions=suggestions)
            logger.warning(f"Empty suggestions returned (attempt {attempt + 1})")

        logger.warning("No usable suggestions after retries, using offline suggestions")
        return mock_suggestions(text)

    async def get_bilingual_responses(self, text: str) -> BilingualResult:
        """Up to three reply pairs in simple English with Russian translations."""
        messages = build_messages(get_bilingual_prompt(), text)
        logger.info(f"Requesting bilingual responses for: {text[:80]}")

        for attempt in range(self.empty_retries + 1):
            result = await self._complete(messages, 1.0, 500, 1)
            if result is None or result.mock:
                logger.warning("Bilingual responses unavailable upstream, using offline pairs")
                return mock_bilingual_responses(text)
            content = result.first_content().strip()
            parsed = extract_bilingual_pairs(content)
            if parsed.matched:
                logger.info(f"Parsed {len(parsed.pairs)} bilingual pair(s) with {parsed.parser}")
                return BilingualResult(responses=parsed.pairs)
            logger.warning(f"Could not parse bilingual response (attempt {attempt + 1}): {content[:200]}")

        return mock_bilingual_responses(text)

    async def get_translation(self, text: str, source_language: str,
                              target_language: str) -> TranslationResult:
        """Translate text; the trimmed completion is the translation."""
        messages = build_messages(get_translation_prompt(source_language, target_language), text)
        logger.info(f"Requesting translation {source_language}->{target_language} ({len(text)} chars)")

        result = await self._complete(messages, 0.3, 1000, 1)
        if result is None or result.mock:
            logger.warning("Translation unavailable upstream, using offline translation")
            return mock_translation(text, source_language, target_language)
        translation = result.first_content().strip()
        if not translation:
            logger.warning("Empty translation returned, using offline translation")
            return mock_translation(text, source_language, target_language)
        return TranslationResult(translation=translation)
