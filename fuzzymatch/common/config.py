"""Configuration management for fuzzy search components.

This module centralizes environment-driven configuration for the search
ranker, the caches, the n-gram store, and the reindex tooling. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Usage
- Inject the config in your entrypoint: ``config = FuzzyMatchConfig()``
- Or use the helper: ``config = get_config()``
"""

from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FuzzyMatchConfig(BaseSettings):
    """Configuration for search, caching, and storage.

    Parameters are read from the process environment with the given names.
    Defaults keep local development convenient while still being explicit.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    fm_env: str = Field(default="local", alias="FM_ENV")

    # Logging
    fm_log_level: str = Field(default="INFO", alias="FM_LOG_LEVEL")
    fm_log_format: str = Field(default="json", alias="FM_LOG_FORMAT")

    # N-gram store
    fm_store_backend: str = Field(default="memory", alias="FM_STORE_BACKEND")
    fm_db_dsn: Optional[str] = Field(default=None, alias="FM_DB_DSN")
    fm_db_pool_size: int = Field(default=10, alias="FM_DB_POOL_SIZE")
    fm_db_command_timeout: int = Field(default=60, alias="FM_DB_COMMAND_TIMEOUT")
    fm_ngram_table: str = Field(default="ngrams", alias="FM_NGRAM_TABLE")

    # Caches
    fm_query_cache_size: int = Field(default=1_000, alias="FM_QUERY_CACHE_SIZE")
    fm_query_cache_ttl: int = Field(default=600, alias="FM_QUERY_CACHE_TTL")
    fm_similarity_cache_size: int = Field(default=10_000, alias="FM_SIMILARITY_CACHE_SIZE")
    fm_similarity_cache_ttl: int = Field(default=600, alias="FM_SIMILARITY_CACHE_TTL")

    # Search
    fm_default_strategy: str = Field(default="cosine", alias="FM_DEFAULT_STRATEGY")
    fm_schema_path: Optional[str] = Field(default=None, alias="FM_SCHEMA_PATH")

    def store_env(self) -> Dict[str, str]:
        """Flatten store settings into the mapping the store factory expects."""
        env = {
            "FM_STORE_BACKEND": self.fm_store_backend,
            "FM_DB_POOL_SIZE": str(self.fm_db_pool_size),
            "FM_DB_COMMAND_TIMEOUT": str(self.fm_db_command_timeout),
            "FM_NGRAM_TABLE": self.fm_ngram_table,
        }
        if self.fm_db_dsn:
            env["FM_DB_DSN"] = self.fm_db_dsn
        return env


def get_config(**overrides: Any) -> FuzzyMatchConfig:
    """Build the configuration, applying keyword overrides on top of env."""
    return FuzzyMatchConfig(**overrides)
