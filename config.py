"""
Configuration settings for the LexiDeck CLI.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    lexideck_home: Path = Field(
        default=Path.home() / ".lexideck",
        description="Directory holding LexiDeck's local data",
    )
    state_db_path: Path | None = Field(
        default=None,
        description="SQLite state database (defaults to <lexideck_home>/state.db)",
    )
    dataset_path: Path | None = Field(
        default=None,
        description="Vocabulary dataset JSON (defaults to the bundled core word list)",
    )
    storage_namespace: str = Field(
        default="lexideck",
        description="Prefix for every stored record",
    )

    # ========================================
    # Gemini (definitions & quizzes)
    # ========================================
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key; enrichment falls back to placeholders without it",
    )
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API root",
    )
    gemini_models: str = Field(
        default="gemma-3-4b-it,gemma-3-12b-it,gemma-3-27b-it",
        description="Comma-separated model names; one is picked at random per request",
    )
    gemini_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    gemini_max_output_tokens: int = Field(
        default=300,
        ge=1,
        description="Response length cap",
    )
    enrichment_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="HTTP timeout for one enrichment request",
    )
    enrichment_display_timeout: float = Field(
        default=3.0,
        ge=0,
        description="Seconds the study screen waits for a definition before showing a placeholder",
    )

    # ========================================
    # Sessions
    # ========================================
    default_session_length: int = Field(
        default=20,
        ge=1,
        description="Words per session until the learner picks a length",
    )
    max_session_length: int = Field(
        default=50,
        ge=1,
        description="Upper bound for the session length",
    )
    default_smart_mode: bool = Field(
        default=True,
        description="Use smart (bucketed) selection until the learner changes it",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Console log level",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    @property
    def resolved_state_db_path(self) -> Path:
        return self.state_db_path or self.lexideck_home / "state.db"

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key.strip())

    def get_gemini_models(self) -> list[str]:
        """Parse the comma-separated model list."""
        return [m.strip() for m in self.gemini_models.split(",") if m.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
