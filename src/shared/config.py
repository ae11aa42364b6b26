"""Configuration management for the sales assistant.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached for performance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """LLM provider configuration."""
    provider: str = Field(default="openai", description="LLM provider: azure_openai, openai, mock")
    model: str = Field(default="gpt-4-turbo-preview", description="Default model name")
    api_key: Optional[str] = Field(default=None, description="API key")
    api_base: Optional[str] = Field(default=None, description="API base URL")
    api_version: Optional[str] = Field(default="2024-02-15-preview", description="API version")
    deployment_name: Optional[str] = Field(default=None, description="Azure deployment name")
    temperature: float = Field(default=0.5, ge=0, le=2)
    max_tokens: int = Field(default=1000, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        extra="ignore"
    )


class GatewaySettings(BaseSettings):
    """Admission and caching policy for the LLM gateway."""
    max_concurrent: int = Field(default=10, gt=0)
    min_time_ms: int = Field(default=30, ge=0, description="Minimum spacing between dispatches")
    reservoir: Optional[int] = Field(default=200, ge=0, description="Initial permits, None disables")
    refresh_amount: int = Field(default=200, ge=0)
    refresh_interval_seconds: float = Field(default=60, gt=0)

    cache_ttl_seconds: float = Field(default=300, ge=0)
    cache_max_entries: int = Field(default=1000, gt=0)

    request_timeout_seconds: float = Field(default=60, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        extra="ignore"
    )


class OrchestratorSettings(BaseSettings):
    """Orchestrator configuration."""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Agentic loop
    max_turns: int = Field(default=5, gt=0)
    conversation_list_limit: int = Field(default=20, gt=0)

    # Security
    secret_key: str = Field(default="change-me-in-production")
    token_expire_minutes: int = Field(default=60)
    require_auth: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Component settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        return cls(**load_yaml_config(path))


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("ASSISTANT_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
