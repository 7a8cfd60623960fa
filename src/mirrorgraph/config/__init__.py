"""Application configuration helpers."""

from __future__ import annotations

from .access import (
    DATASET_READ_ROLE,
    JOB_RUN_ROLE,
    SNAPSHOT_OWNER_ROLE,
    AccessConfig,
    get_access_config,
)
from .consistency import ConsistencyPolicy
from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .pipeline import PipelineConfig, get_pipeline_config
from .storage import RelationNames, StorageConfig, get_storage_config

__all__ = [
    "DATASET_READ_ROLE",
    "JOB_RUN_ROLE",
    "SNAPSHOT_OWNER_ROLE",
    "AccessConfig",
    "ConfigurationError",
    "ConsistencyPolicy",
    "MissingConfigurationError",
    "PipelineConfig",
    "RateLimit",
    "RelationNames",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_access_config",
    "get_pipeline_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
