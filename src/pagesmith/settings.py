"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagesmith.exceptions import SettingsError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "pagesmith"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )

    output_dir: str = Field(
        default="results",
        validation_alias="OUTPUT_DIR",
        description="Directory receiving produced PDF files.",
    )

    render_max_width: int = Field(
        default=1200,
        ge=1,
        validation_alias="RENDER_MAX_WIDTH",
        description="Pixel width used when rasterizing page previews.",
    )
    render_anti_aliasing: int = Field(
        default=8,
        ge=0,
        le=8,
        validation_alias="RENDER_ANTI_ALIASING",
        description="Rasterizer anti-aliasing level (0-8).",
    )
    render_display_errors: bool = Field(
        default=False,
        validation_alias="RENDER_DISPLAY_ERRORS",
        description="Echo rasterizer warnings to stderr.",
    )

    bookmark_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        validation_alias="BOOKMARK_TIMEOUT_SECONDS",
        description="Wall-clock budget for outline extraction.",
    )
    max_bookmark_level: int = Field(
        default=10,
        ge=1,
        validation_alias="MAX_BOOKMARK_LEVEL",
        description="Deepest outline level accepted for bookmark splits.",
    )
    max_blank_pages: int = Field(
        default=100,
        ge=1,
        validation_alias="MAX_BLANK_PAGES",
        description="Maximum number of blank pages inserted at once.",
    )
    max_copies: int = Field(
        default=10,
        ge=1,
        validation_alias="MAX_COPIES",
        description="Maximum number of copies per duplicated page.",
    )

    save_garbage: int = Field(
        default=3,
        ge=0,
        le=4,
        validation_alias="SAVE_GARBAGE",
        description="Garbage collection level applied when serializing documents.",
    )
    save_deflate: bool = Field(
        default=True,
        validation_alias="SAVE_DEFLATE",
        description="Compress streams when serializing documents.",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        if _is_missing_settings_error(exc):
            ensure_env_file_exists()
            try:
                return Settings()
            except Exception as retry_exc:
                raise SettingsError(exc=retry_exc) from retry_exc
        raise SettingsError(exc=exc) from exc


def ensure_env_file_exists(
    *,
    env_path: Path = Path(".env"),
    template_path: Path = Path(".env.template"),
) -> None:
    """Create `.env` from template when missing.

    Args:
        env_path (Path): Target environment file path.
        template_path (Path): Template file path.
    """
    if env_path.exists() or not template_path.exists():
        return
    env_path.write_text(template_path.read_text(encoding="utf-8"), encoding="utf-8")
    logger.info(
        "Created environment file from template",
        extra={"env_path": str(env_path), "template_path": str(template_path)},
    )


def _is_missing_settings_error(exc: Exception) -> bool:
    """Return whether the settings failure is due to missing values.

    Args:
        exc (Exception): Caught settings initialization error.

    Returns:
        bool: True when the error represents missing settings values.
    """
    if not isinstance(exc, ValidationError):
        return False
    return any(error.get("type") == "missing" for error in exc.errors())
