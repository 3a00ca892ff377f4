"""
Call session: the consumer that turns transcript events into reply hints.

A CallSession receives ``(text, is_final)`` events from a speech capture
component. Interim text only updates the live transcript. Each finalized
utterance is sent through the LLMFacade in the configured mode and the latest
results are kept for display and passed to an optional async callback.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from talkhint.config.constants import LOGGER_NAME
from talkhint.llm.facade import LLMFacade
from talkhint.models.completion_schemas import BilingualResult, SuggestionsResult, TranslationResult

logger = logging.getLogger(LOGGER_NAME)


class SessionMode(str, Enum):
    """What to produce for each finalized utterance."""
    SUGGESTIONS = "suggestions"
    BILINGUAL = "bilingual"


ResultsCallback = Callable[[Dict[str, Any]], Awaitable[None]]


class CallSession:
    """
    Tracks one phone call's transcript and the hints generated for it.

    Args:
        facade: LLM operations used for every finalized utterance
        mode: Suggestions or bilingual replies
        translate_to: Optional target language for translating each utterance
        source_language: Language of the heard speech
        on_results: Awaited with the results dict after each utterance
    """

    def __init__(
        self,
        facade: LLMFacade,
        mode: SessionMode = SessionMode.SUGGESTIONS,
        translate_to: Optional[str] = None,
        source_language: str = "en",
        on_results: Optional[ResultsCallback] = None,
    ):
        self.facade = facade
        self.mode = SessionMode(mode)
        self.translate_to = translate_to
        self.source_language = source_language
        self.on_results = on_results
        self.live_transcript = ""
        self.utterances: List[str] = []
        self.latest_suggestions: Optional[SuggestionsResult] = None
        self.latest_bilingual: Optional[BilingualResult] = None
        self.latest_translation: Optional[TranslationResult] = None

    @property
    def degraded(self) -> bool:
        """True when the latest displayed results came from the offline fallback."""
        latest = [
            r for r in (self.latest_suggestions, self.latest_bilingual, self.latest_translation)
            if r is not None
        ]
        return any(r.mock for r in latest)

    async def on_transcript(self, text: str, is_final: bool) -> Optional[Dict[str, Any]]:
        """
        Handle one transcript event.

        Returns:
            The results dict for a finalized, non-empty utterance, otherwise None
        """
        self.live_transcript = text
        if not is_final:
            return None
        utterance = text.strip()
        if not utterance:
            return None

        self.utterances.append(utterance)
        logger.info(f"Finalized utterance #{len(self.utterances)}: {utterance[:80]}")
        results: Dict[str, Any] = {"utterance": utterance, "mode": self.mode.value}

        if self.mode == SessionMode.BILINGUAL:
            self.latest_bilingual = await self.facade.get_bilingual_responses(utterance)
            results["bilingual"] = self.latest_bilingual
        else:
            self.latest_suggestions = await self.facade.get_suggestions(utterance)
            results["suggestions"] = self.latest_suggestions

        if self.translate_to and self.translate_to != self.source_language:
            self.latest_translation = await self.facade.get_translation(
                utterance, self.source_language, self.translate_to
            )
            results["translation"] = self.latest_translation

        results["degraded"] = self.degraded
        if self.on_results is not None:
            try:
                await self.on_results(results)
            except Exception as e:
                logger.error(f"Results callback failed: {e}", exc_info=True)
        return results

    def reset(self) -> None:
        self.live_transcript = ""
        self.utterances.clear()
        self.latest_suggestions = None
        self.latest_bilingual = None
        self.latest_translation = None
