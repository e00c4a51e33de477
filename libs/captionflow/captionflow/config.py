"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Any
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from captionflow.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

_REPO_ROOT = Path(__file__).resolve().parents[3]

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional real-time translator. \n"
    "Translate from {input_lang} to {output_lang} accurately, maintaining the meaning, "
    "tone, and nuance of the original text.\n"
    "Do not add any explanations, comments, or extra information.\n"
    "Respond only with the translation, nothing else. Keep emoji and punctuation as in the original."
)


def _resolve_repo_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return raw
    p = Path(raw)
    if p.is_absolute():
        return str(p)
    return str((_REPO_ROOT / p).resolve())


class TranslationConfig(BaseSettings):
    """Translation transport configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSLATION_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "openai"
    base_url: str | None = None
    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    request_timeout_s: float = Field(default=8.0, gt=0)  # single translation request
    check_timeout_s: float = Field(default=5.0, gt=0)  # connectivity check
    max_retries: int = Field(default=0, ge=0)
    retry_delay_s: float = Field(default=0.0, ge=0)
    health_stale_after_s: float = Field(default=600.0, gt=0)

    input_language: str = "Russian"
    output_language: str = "English"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


class RateLimitConfig(BaseSettings):
    """Request gating for the translation pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    processing_interval_s: float = Field(
        default=2.0,
        ge=0,
        description="Minimum time between translation requests for one speaker.",
    )
    api_min_spacing_s: float = Field(
        default=0.5,
        ge=0,
        description="Minimum time between outbound API calls across all speakers.",
    )


class CacheConfig(BaseSettings):
    """Translation cache bounds."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_entries: int = Field(default=500, ge=1)
    evict_count: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def _validate_eviction(self) -> "CacheConfig":
        if int(self.evict_count) > int(self.max_entries):
            raise ConfigurationError("CACHE_EVICT_COUNT must be <= CACHE_MAX_ENTRIES")
        return self


class LoopGuardConfig(BaseSettings):
    """Repeated-translation protection."""

    model_config = SettingsConfigDict(
        env_prefix="LOOP_GUARD_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    repeat_threshold: int = Field(default=3, ge=2)
    cooldown_s: float = Field(default=3.0, ge=0)


class SegmentationConfig(BaseSettings):
    """Utterance segmentation and history configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SEGMENT_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    finalize_timeout_s: float = Field(
        default=40.0,
        gt=0,
        description="Speaker inactivity before an utterance is finalized.",
    )
    max_chars: int = Field(
        default=3000,
        ge=1,
        description="Source length above which a finalized segment rolls over instead of closing.",
    )
    max_stored_utterances: int = Field(default=10, ge=1)
    # Snapshots arriving this soon after a clear-all are ignored.
    clear_cooldown_s: float = Field(default=0.5, ge=0)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES, env_file_encoding="utf-8", extra="ignore"
    )

    log_dir: str = "./logs"

    translation: TranslationConfig = TranslationConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()
    cache: CacheConfig = CacheConfig()
    loop_guard: LoopGuardConfig = LoopGuardConfig()
    segmentation: SegmentationConfig = SegmentationConfig()

    # Logging
    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        self.log_dir = _resolve_repo_path(self.log_dir)
        return self

    def translation_config(self) -> dict[str, Any]:
        """Return a provider config dict for the provider registry."""
        cfg = self.translation.model_dump()
        provider = str(cfg.get("provider") or "").strip().lower()
        if not provider:
            raise ConfigurationError("Translation provider is not configured")
        cfg["provider"] = provider

        base_url = str(cfg.get("base_url") or "").strip()
        if provider in {"openai", "openai_compat"}:
            cfg["base_url"] = base_url or "https://api.openai.com/v1"
        elif base_url:
            cfg["base_url"] = base_url
        else:
            cfg.pop("base_url", None)
        return cfg
