from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mirrorgraph.config import (
    ConfigurationError,
    ConsistencyPolicy,
    MissingConfigurationError,
    RelationNames,
    StorageConfig,
    get_access_config,
    get_pipeline_config,
    get_storage_config,
    require_env_var,
    require_env_vars,
)
from mirrorgraph.config.logging import level_from_env
from mirrorgraph.domain.model import DayKey

ACCESS_VARS = (
    "MIRRORGRAPH_GCP_PROJECT",
    "MIRRORGRAPH_PRINCIPAL",
    "MIRRORGRAPH_ACCESS_TOKEN",
    "MIRRORGRAPH_SNAPSHOT_RESOURCE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        *ACCESS_VARS,
        "MIRRORGRAPH_DATA_DIR",
        "MIRRORGRAPH_DATASET",
        "MIRRORGRAPH_BACKEND",
        "DATABASE_URI",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "  ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)
    with pytest.raises(MissingConfigurationError):
        require_env_var("MISSING_B")


def test_storage_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MIRRORGRAPH_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("MIRRORGRAPH_DATASET", "graphs")
    monkeypatch.setenv("MIRRORGRAPH_BACKEND", "Memory")

    config = get_storage_config()

    assert config.backend == "memory"
    assert config.database_path() == tmp_path.resolve() / "graphs.db"
    assert config.database_uri() == f"sqlite+pysqlite:///{tmp_path.resolve() / 'graphs.db'}"


def test_storage_config_prefers_database_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert get_storage_config().database_uri() == "sqlite+pysqlite:///:memory:"


def test_storage_config_rejects_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MIRRORGRAPH_BACKEND", "warehouse")

    with pytest.raises(ConfigurationError, match="warehouse"):
        get_storage_config()


def test_relation_names_follow_day_keys() -> None:
    names = RelationNames()

    assert names.snapshot(DayKey.DAY_AFTER_TOMORROW) == "identities_day_after_tomorrow"
    assert names.current == "identities_current"
    assert names.permutations == "identity_permutations"


def test_consistency_policy_validates_budgets() -> None:
    with pytest.raises(ConfigurationError):
        ConsistencyPolicy(delay_range=(5.0, 1.0))
    with pytest.raises(ConfigurationError):
        ConsistencyPolicy(existence_attempts=0)
    with pytest.raises(ConfigurationError):
        ConsistencyPolicy(delete_settle_seconds=-1)


def test_access_config_absent_when_unset() -> None:
    assert get_access_config() is None


def test_access_config_requires_every_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MIRRORGRAPH_GCP_PROJECT", "demo")

    with pytest.raises(MissingConfigurationError, match="MIRRORGRAPH_ACCESS_TOKEN"):
        get_access_config()


def test_access_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MIRRORGRAPH_GCP_PROJECT", "demo")
    monkeypatch.setenv("MIRRORGRAPH_PRINCIPAL", "user:a@example.com")
    monkeypatch.setenv("MIRRORGRAPH_ACCESS_TOKEN", "token")

    config = get_access_config()

    assert config is not None
    assert config.project_resource == "projects/demo"
    assert config.snapshot_resource == "projects/demo"
    assert config.resilience.base_url is not None


def test_pipeline_config_bundles_sections(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MIRRORGRAPH_DATA_DIR", str(tmp_path))

    config = get_pipeline_config()

    assert config.storage == StorageConfig(data_dir=tmp_path)
    assert config.access is None
    assert config.consistency == ConsistencyPolicy()


def test_level_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    assert level_from_env() == logging.INFO

    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert level_from_env() == logging.DEBUG

    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ConfigurationError):
        level_from_env()
