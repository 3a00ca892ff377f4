"""
Messaging module for safe cross-frame communication.

Key components:
- origin_policy: decides which origins may send to us and receive from us,
  from a static allow-list, trusted domain families and development rules.
- throttle: MessageDeduper (bounded FIFO of seen message keys) and
  RateLimiter (sliding one-second send cap that trips on message loops).
- frames: FrameWindow implementations with postMessage delivery semantics.
- messenger: CrossFrameMessenger, the send/listen facade over all of the above.
- probes: diagnostics that test which origins a frame can reach.

Usage examples:
```python
from talkhint.config.settings import AppSettings
from talkhint.messaging.frames import LocalFrame
from talkhint.messaging.messenger import CrossFrameMessenger

settings = AppSettings(page_origin="https://lovable.dev")
page = LocalFrame("https://lovable.dev")
child = LocalFrame("https://gptengineer.app", parent=page)

messenger = CrossFrameMessenger(page, settings)
messenger.send(child, {"type": "PING"}, "https://gptengineer.app")
```
"""
