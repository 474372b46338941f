# src/config/settings.py
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings. A Settings
instance is passed explicitly to every component that needs a flag,
a TTL or a version tag.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Persona style ===
    persona_style_enabled: bool = True
    capsule_ttl_days: int = 7
    fast_path_timeout_seconds: float = 10.0
    refresh_window_hours: int = 24
    refresh_batch_size: int = 10
    cleanup_batch_size: int = 50
    build_lock_ttl_minutes: int = 30

    # Identity tags, bumped whenever entity or lexicon data changes
    graph_version: str = "2025.07"
    lexicon_version: str = "2025.07"

    # === Storage ===
    capsule_db_path: Path = Path("~/.sevenpools/capsules.db")
    entity_store_path: Path | None = None

    # === Cache ===
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "memory"
    cache_root: Path = Path("~/.sevenpools/cache")
    cache_redis_url: str = ""

    # === Embeddings ===
    embedding_provider: Literal["none", "openai"] = "none"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    openai_api_key: str = ""

    # === Graph database ===
    graph_db_type: Literal["none", "neo4j"] = "none"
    graph_db_uri: str = "bolt://localhost:7687"
    graph_db_database: str = "neo4j"
    graph_db_user: str = ""
    graph_db_password: str = ""

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("graph_version", "lexicon_version")
    @classmethod
    def validate_version_tag(cls, v: str) -> str:  # noqa: N805
        """Version tags partition the capsule key space and must be set."""
        if not v or not v.strip():
            raise ValueError("version tag must be a non-empty string")
        return v.strip()

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if self.fast_path_timeout_seconds <= 0:
            errors.append("FAST_PATH_TIMEOUT_SECONDS must be > 0")

        if self.capsule_ttl_days < 1:
            errors.append("CAPSULE_TTL_DAYS must be >= 1")

        if self.cleanup_batch_size < 1:
            errors.append("CLEANUP_BATCH_SIZE must be >= 1")

        if self.refresh_batch_size < 1:
            errors.append("REFRESH_BATCH_SIZE must be >= 1")

        if self.refresh_window_hours < 0:
            errors.append("REFRESH_WINDOW_HOURS must be >= 0")

        if self.embedding_provider == "openai" and not self.openai_api_key:
            errors.append("EMBEDDING_PROVIDER=openai requires OPENAI_API_KEY")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def capsule_ttl_seconds(self) -> int:
        return self.capsule_ttl_days * 86_400

    @property
    def build_lock_ttl_seconds(self) -> int:
        return self.build_lock_ttl_minutes * 60


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-process config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
