"""
Services module for clients of TalkHint's network surfaces.

Key components:
- frame_client: FrameBridgeClient, which connects to the ``/ws/frames``
  bridge as a remote frame, sends enveloped messages and waits for replies.

Usage examples:
```python
from talkhint.services.frame_client import FrameBridgeClient

client = FrameBridgeClient("ws://localhost:8000/ws/frames", origin="https://lovable.dev")
if await client.connect():
    if await client.handshake():
        await client.report_error("Microphone permission denied")
    await client.close()
```
"""
