"""Lumen configuration management.

Loads settings from (in priority order):
1. lumen_config.yaml (if exists; passed as init kwargs)
2. Environment variables
3. .env file
4. Default values (lowest)

Sub-settings read their own ``LUMEN_<SECTION>_`` variables only when the
YAML file does not provide that section.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional

import structlog
import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class CacheSettings(BaseSettings):
    """Response cache middleware configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMEN_CACHE_")

    enabled: bool = Field(default=True, description="Register the cache middleware")
    ttl: float = Field(default=3600.0, gt=0, description="Entry lifetime in seconds")
    max_entries: int = Field(default=100, ge=1, description="Maximum cached responses")
    cache_streaming: bool = Field(
        default=True, description="Also cache the final result of streamed completions"
    )
    key_scheme: Literal["content", "message"] = Field(
        default="content",
        description="'content' keys on role/content/name, 'message' on the full message",
    )


class OpenAISettings(BaseSettings):
    """OpenAI provider configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMEN_OPENAI_", populate_by_name=True)

    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LUMEN_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: Optional[str] = Field(
        default=None, description="Optional custom base URL for Azure/LocalAI"
    )
    organization: Optional[str] = Field(default=None)
    default_model: str = Field(default="gpt-4o")
    timeout: float = Field(default=60.0, gt=0, description="Request timeout in seconds")
    max_retries: int = Field(
        default=0, ge=0, description="SDK transport retries (Lumen itself never retries)"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMEN_LOG_")

    level: str = Field(default="INFO", description="Log level")
    json_format: bool = Field(default=False, description="Use JSON log format")
    log_content: bool = Field(
        default=False, description="Include message text in middleware log events"
    )


# ---------------------------------------------------------------------------
# Main Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Root settings."""

    model_config = SettingsConfigDict(
        env_prefix="LUMEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(default="development")
    provider: Literal["openai"] = Field(default="openai")

    cache: CacheSettings = Field(default_factory=CacheSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("environment")
    @classmethod
    def _validate_env(cls, v: str) -> str:
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {sorted(allowed)}")
        return v


# ---------------------------------------------------------------------------
# YAML config support
# ---------------------------------------------------------------------------

def _load_yaml_config() -> dict[str, Any]:
    """Attempt to load lumen_config.yaml from common locations."""
    search_paths = [
        Path("lumen_config.yaml"),
        Path("lumen_config.yml"),
        Path.home() / ".lumen" / "config.yaml",
    ]
    for path in search_paths:
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning("Ignoring unreadable config file", path=str(path), error=str(exc))
                continue
            return data if isinstance(data, dict) else {}
    return {}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get settings (singleton, cached).

    Merges YAML config (if found) with env vars; YAML keys take precedence.
    """
    yaml_data = _load_yaml_config()
    return Settings(**yaml_data)
