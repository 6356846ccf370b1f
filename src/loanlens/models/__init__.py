"""
Models Module - Data Models and Type Definitions
=================================================

Pydantic v2 models for the persisted conversation data, user settings and the
provider wire format, plus the exception taxonomy.

Modules:
    session_models: Chat and Message with camelCase serialization
    settings_models: Connection/generation settings and presets
    api_models: Completion request body, response and stream chunk shapes
    error_models: ErrorCode enum and LoanLensError hierarchy
"""
