"""Configuration loader for the video harvester (Pydantic edition)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any, Literal, Sequence

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .core.downloader import DEFAULT_LANGUAGES, DEFAULT_USER_AGENT
from .platforms.youtube import API_BASE_URL
from .utils.secrets import secret_value

LOGGER = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded safely."""


class AppConfig(BaseSettings):
    """Strongly typed runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        validate_default=True,
        populate_by_name=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENVIRONMENT", "APP_ENV"),
    )
    log_path: Path = Field(
        default=Path("logs/vidharvest.log"),
        validation_alias=AliasChoices("APP_LOG_PATH", "LOG_PATH"),
    )

    # Required inputs
    api_key: SecretStr | None = Field(default=None, validation_alias=AliasChoices("YOUTUBE_API_KEY", "APP_API_KEY", "key"))
    video_id: str | None = Field(default=None, validation_alias=AliasChoices("APP_VIDEO_ID", "YOUTUBE_VIDEO_ID", "id"))

    # Comment collection
    target_comment_count: int = Field(12_000, ge=0, validation_alias="APP_TARGET_COMMENT_COUNT")
    sort_order: Literal["relevance", "time"] = Field("relevance", validation_alias="APP_SORT_ORDER")
    include_replies: bool = Field(True, validation_alias="APP_INCLUDE_REPLIES")
    page_size: int = Field(500, ge=1, validation_alias="APP_PAGE_SIZE")

    # Pacing and retries
    request_delay_min_ms: int = Field(800, ge=0, validation_alias="APP_REQUEST_DELAY_MIN_MS")
    request_delay_max_ms: int = Field(1000, ge=0, validation_alias="APP_REQUEST_DELAY_MAX_MS")
    page_delay_ms: int = Field(500, ge=0, validation_alias="APP_PAGE_DELAY_MS")
    retry_attempts: int = Field(1, ge=1, le=10, validation_alias="APP_RETRY_ATTEMPTS")
    retry_backoff_seconds: float = Field(2.0, ge=0, validation_alias="APP_RETRY_BACKOFF_SECONDS")
    api_base_url: str = Field(API_BASE_URL, validation_alias="APP_API_BASE_URL")

    # Filesystem layout
    output_dir: Path = Field(default=Path("."), validation_alias=AliasChoices("APP_OUTPUT_DIR", "static_path"))

    # Caption tool
    captions_enabled: bool = Field(True, validation_alias="APP_CAPTIONS_ENABLED")
    caption_languages: Annotated[tuple[str, ...], NoDecode] = Field(
        DEFAULT_LANGUAGES, validation_alias="APP_CAPTION_LANGUAGES"
    )
    caption_tool: str = Field("yt-dlp", validation_alias="APP_CAPTION_TOOL")
    cookies_browser: str | None = Field("chrome", validation_alias="APP_COOKIES_BROWSER")
    user_agent: str = Field(DEFAULT_USER_AGENT, validation_alias="APP_USER_AGENT")
    caption_sleep_min: float = Field(1.0, ge=0, validation_alias="APP_CAPTION_SLEEP_MIN")
    caption_sleep_max: float = Field(5.0, ge=0, validation_alias="APP_CAPTION_SLEEP_MAX")

    @field_validator("log_path", "output_dir", mode="after")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        expanded = value.expanduser()
        return expanded if expanded.is_absolute() else (Path.cwd() / expanded).resolve()

    @field_validator("caption_languages", mode="before")
    @classmethod
    def _split_languages(cls, value: str | Sequence[str] | None) -> tuple[str, ...]:
        if value is None:
            return DEFAULT_LANGUAGES
        if isinstance(value, str):
            tokens = [part.strip() for part in value.split(",") if part.strip()]
            return tuple(tokens) if tokens else DEFAULT_LANGUAGES
        return tuple(value)

    @field_validator("video_id", "cookies_browser", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _validate_bounds(self) -> "AppConfig":
        if self.request_delay_min_ms > self.request_delay_max_ms:
            raise ConfigError("request_delay_min_ms cannot exceed request_delay_max_ms")
        if self.caption_sleep_min > self.caption_sleep_max:
            raise ConfigError("caption_sleep_min cannot exceed caption_sleep_max")
        return self

    def require_inputs(self) -> None:
        """Fail before any network call when the key or video id is missing."""
        missing = []
        if not secret_value(self.api_key):
            missing.append("YOUTUBE_API_KEY")
        if not self.video_id:
            missing.append("APP_VIDEO_ID")
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    @property
    def request_delay_range(self) -> tuple[float, float]:
        return (self.request_delay_min_ms / 1000, self.request_delay_max_ms / 1000)

    @property
    def page_delay_seconds(self) -> float:
        return self.page_delay_ms / 1000


def load_config(env_path: Path | None = None, **overrides: Any) -> AppConfig:
    """Load configuration from .env/environment, apply overrides, validate."""
    load_kwargs: dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    if env_path is not None:
        load_dotenv(env_path, override=False)
        load_kwargs["_env_file"] = str(env_path)
    else:
        load_dotenv(override=False)
    try:
        config = AppConfig(**load_kwargs)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    config.require_inputs()

    LOGGER.info(
        "AppConfig loaded",
        extra={
            "event": "config.loaded",
            "environment": config.environment,
            "video_id": config.video_id,
            "output_dir": str(config.output_dir),
        },
    )
    return config
