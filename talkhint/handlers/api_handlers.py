"""
Handlers for the thin proxy server's HTTP API.

The chat handler is a connectivity check that echoes the posted message.
The OpenAI handler forwards a chat-completion body upstream with the
server-held credential, so browsers never see it; a client bearer token is
only used when the server has no credential of its own.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from talkhint.config.constants import LOGGER_NAME, OPENAI_CHAT_COMPLETIONS_URL
from talkhint.config.logging_config import mask_secret
from talkhint.models.message_schemas import ChatRequest, ChatResponse

logger = logging.getLogger(LOGGER_NAME)

UPSTREAM_TIMEOUT_SECONDS = 60.0


async def handle_chat(body: Any) -> JSONResponse:
    """
    Echo a chat message.

    Args:
        body: Parsed JSON request body

    Returns:
        JSONResponse: 200 with the echo, or 400 when ``message`` is missing
    """
    try:
        message = ChatRequest.model_validate(body).message
    except ValidationError:
        return JSONResponse(status_code=400, content={"error": "Message is required"})

    logger.info(f"Chat request received: {message[:80]}")
    response = ChatResponse(success=True, received=message, response=f'Server received: "{message}"')
    return JSONResponse(content=response.model_dump())


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def resolve_api_key(server_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """Server credential first, then the client's bearer token."""
    return server_key or bearer_token(authorization)


async def handle_openai_proxy(
    body: Any,
    authorization: Optional[str],
    server_key: Optional[str],
    http_client: httpx.AsyncClient,
    upstream_url: str = OPENAI_CHAT_COMPLETIONS_URL,
) -> JSONResponse:
    """
    Forward a chat-completion request to the upstream API.

    Upstream status and body are passed through unchanged.
    """
    api_key = resolve_api_key(server_key, authorization)
    if not api_key:
        return JSONResponse(status_code=401, content={"error": "API key is required"})
    if not api_key.startswith("sk-"):
        logger.warning(f"Rejected API key with invalid format: {mask_secret(api_key)}")
        return JSONResponse(status_code=401, content={"error": "Invalid API key format"})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})

    source = "server" if server_key else "client"
    logger.info(
        f"Forwarding request with {len(body.get('messages') or [])} messages "
        f"using {source} key {mask_secret(api_key)}"
    )
    try:
        response = await http_client.post(
            upstream_url,
            json=body,
            headers={"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"},
            timeout=UPSTREAM_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as e:
        logger.error(f"Error calling OpenAI API: {e}")
        return JSONResponse(
            status_code=502,
            content={"error": "Error calling OpenAI API", "message": str(e)},
        )

    logger.info(f"Response received from OpenAI API with status {response.status_code}")
    try:
        content: Dict[str, Any] = response.json()
    except ValueError:
        content = {"error": response.text}
    return JSONResponse(status_code=response.status_code, content=content)
