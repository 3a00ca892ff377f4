"""
LLM module: prompt construction, response parsing and offline fallbacks.

Key components:
- prompts: system prompts per response style, bilingual and translation use case.
- parsers: the ordered chain that extracts bilingual pairs from JSON or text.
- mocks: deterministic keyword-keyed results used when upstream is unavailable.
- facade: LLMFacade with get_suggestions, get_bilingual_responses and get_translation.
"""
