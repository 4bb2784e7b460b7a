"""Providers package."""

from __future__ import annotations

from typing import Optional

from lumen.config import Settings, get_settings
from lumen.errors import MissingCredentialError
from lumen.providers.base import LLMProvider
from lumen.providers.openai_provider import OpenAIProvider


def create_provider(settings: Optional[Settings] = None) -> LLMProvider:
    """Build the provider selected in settings."""
    settings = settings or get_settings()
    if settings.provider == "openai":
        cfg = settings.openai
        if not cfg.api_key:
            raise MissingCredentialError(
                "OpenAI API key is missing: set OPENAI_API_KEY or LUMEN_OPENAI_API_KEY"
            )
        return OpenAIProvider(
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            organization=cfg.organization,
            default_model=cfg.default_model,
            timeout=cfg.timeout,
            max_retries=cfg.max_retries,
        )
    raise ValueError(f"Unsupported LLM provider: {settings.provider!r}")


__all__ = ["LLMProvider", "OpenAIProvider", "create_provider"]
