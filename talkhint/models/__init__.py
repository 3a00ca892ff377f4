"""
Models module for data structures shared across TalkHint.

Key components:
- completion_schemas: the normalized CompletionResult every upstream backend
  converges to, plus the typed results of the LLM facade (suggestions,
  bilingual pairs, translation).
- message_schemas: the cross-frame message envelope and the request and
  response bodies of the thin proxy server.

Usage examples:
```python
from talkhint.models.completion_schemas import CompletionResult

result = CompletionResult.from_payload(
    {"choices": [{"message": {"role": "assistant", "content": "Hi!"}}]}
)
print(result.contents())  # ["Hi!"]

from talkhint.models.message_schemas import Envelope

Envelope(source="https://lovable.dev", id=1).wrap({"type": "PING"})
```
"""

from talkhint.models.completion_schemas import (
    BilingualPair,
    BilingualResult,
    ChatMessage,
    Choice,
    CompletionRequest,
    CompletionResult,
    MessageRole,
    SuggestionsResult,
    TranslationResult,
)
from talkhint.models.message_schemas import (
    ChatRequest,
    ChatResponse,
    Envelope,
    FrameMessage,
    HealthResponse,
)
