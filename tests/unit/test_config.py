from __future__ import annotations

import pytest

from directory_pipeline import config as config_module
from directory_pipeline.config import CONSTRAINED_MEMORY_BYTES, Settings
from directory_pipeline.infrastructure.db_factory import build_dsn
from directory_pipeline.utils import resources

DEFAULT_CEILING = 1000
CONSTRAINED_CEILING = 500


def test_settings_defaults() -> None:
    settings = Settings()

    assert settings.db_port > 0
    assert settings.db_table == "employees"
    assert settings.special_surname_letter == "F"
    assert settings.insert_batch_size > 0
    assert settings.export_page_size > 0


def test_development_profile_uses_the_full_ceiling(settings: Settings) -> None:
    assert not settings.constrained_profile
    assert settings.batch_ceiling == DEFAULT_CEILING


@pytest.mark.parametrize(
    "overrides",
    [
        {"app_env": "production"},
        {"app_env": "Production"},
        {"memory_safe_mode": True},
        {"deployment_mode": True},
    ],
)
def test_constrained_profiles_lower_the_ceiling(overrides) -> None:
    settings = Settings(**overrides)

    assert settings.constrained_profile
    assert settings.batch_ceiling == CONSTRAINED_CEILING


def test_small_container_is_a_constrained_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "container_memory_limit_bytes", lambda: CONSTRAINED_MEMORY_BYTES // 2)

    assert Settings(app_env="development").batch_ceiling == CONSTRAINED_CEILING


def test_large_container_is_not_constrained(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "container_memory_limit_bytes", lambda: CONSTRAINED_MEMORY_BYTES * 4)

    assert not Settings(app_env="development").constrained_profile


def test_environment_variables_are_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("EXPORT_PAGE_SIZE", "250")

    settings = Settings()

    assert settings.app_env == "production"
    assert settings.export_page_size == 250


def test_memory_limit_is_reported_in_bytes() -> None:
    assert Settings(memory_limit_mb=2).memory_limit_bytes == 2 * 1024 * 1024


def test_build_dsn() -> None:
    settings = Settings(db_user="u", db_password="p", db_host="db", db_port=5433, db_name="dir")

    assert build_dsn(settings) == "postgresql://u:p@db:5433/dir"


def test_memory_limit_override_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PIPELINE_MEMORY_LIMIT_BYTES", str(256 * 1024 * 1024))

    assert resources.container_memory_limit_bytes() == 256 * 1024 * 1024
    assert resources.get_container_resources()["memory"] == "256MB"
