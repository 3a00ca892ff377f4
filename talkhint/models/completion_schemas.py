"""
Pydantic models for chat-completion requests and the results built on them.

Every backend (self-hosted proxy, vendor proxies, direct upstream, local mock)
converges to CompletionResult before reaching the LLM facade, and the facade
turns CompletionResult into one of the typed operation results below.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Role of a participant in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A single role-tagged message."""
    role: MessageRole
    content: str

    model_config = ConfigDict(use_enum_values=True)


class CompletionRequest(BaseModel):
    """Body posted to a chat completions endpoint."""
    model: str
    messages: List[ChatMessage]
    temperature: float = 1.0
    max_tokens: int = 150
    n: int = Field(default=1, ge=1)


class Choice(BaseModel):
    """One completion choice."""
    index: int = 0
    message: ChatMessage
    finish_reason: Optional[str] = None


class CompletionResult(BaseModel):
    """
    Normalized completion shape: ``{choices: [{message: {role, content}}]}``.

    ``mock`` is True when the result was computed locally because the
    upstream could not be reached; UI layers use it to show degraded mode.
    """
    choices: List[Choice] = Field(default_factory=list)
    model: Optional[str] = None
    mock: bool = False
    request_id: Optional[str] = None

    def contents(self) -> List[str]:
        """Stripped, non-empty content strings of every choice."""
        texts = []
        for choice in self.choices:
            text = (choice.message.content or "").strip()
            if text:
                texts.append(text)
        return texts

    def first_content(self) -> str:
        return self.choices[0].message.content if self.choices else ""

    @classmethod
    def from_contents(cls, contents: List[str], *, mock: bool = False,
                      request_id: Optional[str] = None) -> "CompletionResult":
        return cls(
            choices=[
                Choice(index=i, message=ChatMessage(role=MessageRole.ASSISTANT, content=c))
                for i, c in enumerate(contents)
            ],
            mock=mock,
            request_id=request_id,
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any],
                     request_id: Optional[str] = None) -> "CompletionResult":
        """Build from an upstream JSON body; raises ValueError on a wrong shape."""
        if not isinstance(payload, dict):
            raise ValueError("completion payload is not an object")
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ValueError("completion payload has no choices")
        parsed = []
        for i, raw in enumerate(choices):
            message = raw.get("message") if isinstance(raw, dict) else None
            if not isinstance(message, dict) or not isinstance(message.get("content"), str):
                raise ValueError(f"choice {i} has no message content")
            parsed.append(
                Choice(
                    index=raw.get("index", i),
                    message=ChatMessage(
                        role=message.get("role") or MessageRole.ASSISTANT,
                        content=message["content"],
                    ),
                    finish_reason=raw.get("finish_reason"),
                )
            )
        return cls(choices=parsed, model=payload.get("model"), request_id=request_id)


class SuggestionsResult(BaseModel):
    """Short reply suggestions for a heard utterance."""
    suggestions: List[str] = Field(default_factory=list)
    mock: bool = False


class BilingualPair(BaseModel):
    """A reply in the primary language plus its translation."""
    primary: str = Field(..., alias="english")
    secondary: str = Field(..., alias="russian")

    model_config = ConfigDict(populate_by_name=True)


class BilingualResult(BaseModel):
    """Up to three bilingual reply pairs."""
    responses: List[BilingualPair] = Field(default_factory=list)
    mock: bool = False


class TranslationResult(BaseModel):
    """Translated text."""
    translation: str
    mock: bool = False
