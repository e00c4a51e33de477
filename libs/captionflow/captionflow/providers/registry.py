"""Provider factory and registry."""

from __future__ import annotations

from typing import Any
from collections.abc import Mapping

from captionflow.exceptions import ConfigurationError
from captionflow.providers.llm.base import LLMProvider


def get_llm_provider(config: Mapping[str, Any]) -> LLMProvider:
    """Get the translation transport based on configuration."""
    provider_type = str(config.get("provider", "openai")).strip().lower()

    match provider_type:
        case "openai" | "openai_compat":
            from captionflow.providers.llm.openai_compat import OpenAICompatProvider

            return OpenAICompatProvider(
                api_key=str(config.get("api_key") or ""),
                model=str(config.get("model") or "gpt-3.5-turbo"),
                base_url=config.get("base_url"),
                provider=provider_type,
                timeout=float(config.get("request_timeout_s", 8.0)),
                check_timeout=float(config.get("check_timeout_s", 5.0)),
                max_retries=int(config.get("max_retries", 0)),
                retry_delay_s=float(config.get("retry_delay_s", 0.0)),
            )
        case _:
            raise ConfigurationError(f"Unknown translation provider: {provider_type}")
