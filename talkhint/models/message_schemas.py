"""
Pydantic models for cross-frame messages and the HTTP API surface.

Frame messages are free-form JSON objects identified by their ``type``
field. The messenger adds an envelope (``_source``, ``_timestamp``, ``_id``)
to every outbound message; the remaining models describe the request and
response bodies of the thin proxy server.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from talkhint.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


def utc_timestamp() -> str:
    """Current UTC time in ISO 8601 with a trailing Z."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Envelope(BaseModel):
    """Structural fields attached to every outbound frame message."""

    source: str = Field(..., alias="_source")
    timestamp: str = Field(default_factory=utc_timestamp, alias="_timestamp")
    id: int = Field(..., alias="_id")

    model_config = ConfigDict(populate_by_name=True)

    def wrap(self, message: Any) -> Dict[str, Any]:
        """Merge the envelope into a payload; non-objects go under ``payload``."""
        body = dict(message) if isinstance(message, dict) else {"payload": message}
        body.update(self.model_dump(by_alias=True))
        return body


class FrameMessage(BaseModel):
    """An inbound frame message; only ``type`` is structural."""

    type: str
    payload: Optional[Any] = None
    source: Optional[str] = Field(None, alias="_source")
    timestamp: Optional[str] = Field(None, alias="_timestamp")
    id: Optional[int] = Field(None, alias="_id")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("type")
    def validate_type(cls, v):
        """Message type must be a non-empty string."""
        if not v.strip():
            raise ValueError("Message type cannot be empty")
        return v


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""
    message: str = Field(..., min_length=1)


class ChatResponse(BaseModel):
    """Reply of POST /api/chat."""
    success: bool
    received: str
    response: str
    timestamp: str = Field(default_factory=utc_timestamp)


class HealthResponse(BaseModel):
    """Reply of GET /health."""
    status: str = "ok"
    timestamp: str = Field(default_factory=utc_timestamp)
    environment: str
    openai_api_key_configured: bool
    active_frames: int = 0
    headers: Dict[str, str] = Field(default_factory=dict)
