"""
LoanLens - Chat client session engine for loan document analysis
================================================================

Talks to any OpenAI-compatible chat completions endpoint (a hosted service or
a local model server), streams the assistant's answer and keeps every
conversation in a local key-value store.

Packages:
    core: Session store, completion client, controller, content parser, export
    models: Pydantic models for chats, settings, provider payloads and errors
    utils: Logging, HTTP client factory, persistence adapters, JSON helpers
    app: Bootstrap and application state for the terminal front end
"""

__version__ = "1.0.0"
