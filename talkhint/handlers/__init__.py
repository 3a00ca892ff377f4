"""
Handlers module for the TalkHint server.

Key components:
- api_handlers: the simple chat echo and the OpenAI chat-completions proxy,
  which keeps the server-held credential out of the browser.
- frame_handlers: replies to frame bridge messages (ready acknowledgements,
  test echoes, ping/pong, error report receipts, debug logging).
- page_handlers: the HTML page used to test postMessage from an embedding page.

Usage examples:
```python
from talkhint.handlers.frame_handlers import handle_ping

reply = await handle_ping({"type": "PING", "_id": 7}, "https://lovable.dev")
# {"type": "PONG", "replyTo": 7, "timestamp": "..."}
```
"""
