"""
Connection and generation settings for LoanLens.

Settings are user-editable and persisted next to the chat collection; the
process-level environment lives in :class:`loanlens.core.constants.Environment`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from loanlens.core.prompts import DEFAULT_SYSTEM_PROMPT


class ConnectionType(str, Enum):
    """Which configured endpoint a request targets."""

    CLOUD = "cloud"
    LOCAL = "local"


@dataclass(frozen=True, slots=True)
class GenerationPreset:
    """Named temperature/top-p pair offered as a one-click setting."""

    name: str
    temperature: float
    top_p: float


GENERATION_PRESETS: dict[str, GenerationPreset] = {
    preset.name: preset
    for preset in (
        GenerationPreset("precise", 0.3, 0.9),
        GenerationPreset("balanced", 0.7, 0.95),
        GenerationPreset("creative", 1.2, 1.0),
    )
}


class Settings(BaseModel):
    """Pydantic model for connection and generation settings."""

    connection_type: ConnectionType = Field(default=ConnectionType.CLOUD)
    cloud_endpoint: str = Field(default="https://text.pollinations.ai/openai", min_length=1)
    api_key: str = Field(default="", description="Bearer token for the cloud endpoint")
    model: str = Field(default="openai", min_length=1)
    local_endpoint: str = Field(default="http://localhost:11434/v1", min_length=1)
    local_model: str = Field(default="llama2", min_length=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    max_tokens: int = Field(default=2048, gt=0)
    streaming: bool = Field(default=True)
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
        extra="ignore",
    )

    @field_validator("cloud_endpoint", "local_endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("endpoint must be an http:// or https:// URL")
        return v

    @property
    def is_cloud(self) -> bool:
        """True when requests target the cloud endpoint."""
        return self.connection_type == ConnectionType.CLOUD

    @property
    def endpoint(self) -> str:
        """Endpoint selected by the connection type."""
        return self.cloud_endpoint if self.is_cloud else self.local_endpoint

    @property
    def active_model(self) -> str:
        """Model selected by the connection type."""
        return self.model if self.is_cloud else self.local_model

    def auth_headers(self) -> dict[str, str]:
        """Authorization header, only for cloud connections with a key."""
        if self.is_cloud and self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    def with_preset(self, name: str) -> Settings:
        """Return a copy with the named generation preset applied.

        Raises:
            ValueError: If the preset name is unknown
        """
        preset = GENERATION_PRESETS.get(name.lower())
        if preset is None:
            raise ValueError(f"Unknown preset '{name}'. Choose one of {sorted(GENERATION_PRESETS)}")
        return self.model_copy(update={"temperature": preset.temperature, "top_p": preset.top_p})

    def to_dict(self) -> dict[str, object]:
        """Serialize with camelCase keys (persistence format)."""
        return self.model_dump(by_alias=True, mode="json")
