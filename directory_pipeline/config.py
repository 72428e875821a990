"""
Configuration settings for the employee directory pipeline.

Uses Pydantic Settings to load environment variables for database connections,
logging, generation defaults, batch ceilings and memory-governor tuning.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from directory_pipeline.utils.resources import container_memory_limit_bytes

# Hosts with less memory than this are treated as a constrained profile.
CONSTRAINED_MEMORY_BYTES = 1024**3


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("employee_directory", alias="DB_NAME")
    db_pool_min: int = Field(2, alias="DB_POOL_MIN")
    db_pool_max: int = Field(20, alias="DB_POOL_MAX")
    db_table: str = Field("employees", alias="DB_TABLE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    memory_safe_mode: bool = Field(False, alias="MEMORY_SAFE_MODE")
    deployment_mode: bool = Field(False, alias="DEPLOYMENT_MODE")

    # Generation defaults
    generation_base_count: int = Field(1_000_000, alias="GENERATION_BASE_COUNT")
    generation_special_count: int = Field(100, alias="GENERATION_SPECIAL_COUNT")
    special_surname_letter: str = Field("F", alias="SPECIAL_SURNAME_LETTER")
    generation_seed: Optional[int] = Field(None, alias="GENERATION_SEED")

    # Insertion
    insert_batch_size: int = Field(1_000, alias="INSERT_BATCH_SIZE")
    max_batch_size: int = Field(1_000, alias="MAX_BATCH_SIZE")
    constrained_max_batch_size: int = Field(500, alias="CONSTRAINED_MAX_BATCH_SIZE")

    # Memory governor
    memory_check_every_batches: int = Field(10, alias="MEMORY_CHECK_EVERY_BATCHES")
    memory_limit_mb: int = Field(512, alias="MEMORY_LIMIT_MB")
    memory_warn_ratio: float = Field(0.8, alias="MEMORY_WARN_RATIO")
    memory_mild_pause_ms: int = Field(50, alias="MEMORY_MILD_PAUSE_MS")
    memory_severe_pause_ms: int = Field(500, alias="MEMORY_SEVERE_PAUSE_MS")
    memory_force_gc: bool = Field(True, alias="MEMORY_FORCE_GC")

    # Export
    export_page_size: int = Field(5_000, alias="EXPORT_PAGE_SIZE")
    export_check_every_pages: int = Field(10, alias="EXPORT_CHECK_EVERY_PAGES")
    export_dir: str = Field("exports", alias="EXPORT_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def constrained_profile(self) -> bool:
        """
        Whether the process runs under a memory-constrained/deployment profile.
        """
        if self.app_env.lower() == "production" or self.memory_safe_mode or self.deployment_mode:
            return True
        limit = container_memory_limit_bytes()
        return limit is not None and limit < CONSTRAINED_MEMORY_BYTES

    @property
    def batch_ceiling(self) -> int:
        """Largest batch the inserter will submit in one statement."""
        if self.constrained_profile:
            return min(self.constrained_max_batch_size, self.max_batch_size)
        return self.max_batch_size

    @property
    def memory_limit_bytes(self) -> int:
        return self.memory_limit_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings", "CONSTRAINED_MEMORY_BYTES"]
