"""
Core Layer - Session Engine
===========================

Modules:
    constants: Configuration values, storage keys and Pydantic environment settings
    prompts: Default system prompt and suggested conversation openers
    session_store: Chat collection, active chat pointer and settings, persisted on every mutation
    completion_client: One request/stream cycle against a chat completions endpoint
    session_controller: Drives a user turn from input to committed assistant message
    cancellation: Cooperative cancellation token for in-flight requests
    content_parser: Splits message text into prose and fenced code segments
    export: JSON and Markdown transcripts of a chat

Data flow for one turn:
    SessionController.send_message
        -> SessionStore.append_message (user)
        -> CompletionClient.complete (TextDelta... FinalText)
        -> SessionStore.append_message (assistant or error text)
"""
