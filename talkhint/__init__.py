"""
TalkHint - conversation hints for phone calls

TalkHint listens to a phone conversation transcript and suggests short
replies, bilingual reply pairs or translations from a language model. The
server side hides the model API credential behind a thin proxy, and a
cross-frame messaging layer lets the UI run embedded in other pages.

Architecture Overview:
- Cross-origin messaging: origin policy, dedupe and rate limiting behind a
  single messenger facade, also exposed to remote pages over a WebSocket bridge
- Upstream resilience: a rotating chain of proxy endpoints, timed attempts with
  exponential backoff and a deterministic offline fallback
- LLM facade: prompt construction and tolerant response parsing

Key Components:
- config: constants, logging, settings and the persisted user config
- messaging: OriginPolicy, MessageDeduper, RateLimiter, CrossFrameMessenger
- proxy: ProxyEndpointRegistry and UpstreamRequestClient
- llm: prompts, parsers, offline mocks and LLMFacade
- models: pydantic schemas for completions and frame messages
- handlers: HTTP and frame bridge handlers
- services: the frame bridge client
- session: CallSession, the transcript-driven consumer of the facade
- frame_bridge: FrameBridgeManager for ``/ws/frames``

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: server-held OpenAI API key used by the proxy route
   - TALKHINT_ENV: development, production (default) or test
   - PORT / HOST: server bind address (default 0.0.0.0:8000)
   - LOG_LEVEL: logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```
"""
