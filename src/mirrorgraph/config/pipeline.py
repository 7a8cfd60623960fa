"""Top-level configuration bundle handed to the pipeline components."""

from __future__ import annotations

from dataclasses import dataclass, field

from .access import AccessConfig, get_access_config
from .consistency import ConsistencyPolicy
from .storage import RelationNames, StorageConfig, get_storage_config


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    storage: StorageConfig
    consistency: ConsistencyPolicy = field(default_factory=ConsistencyPolicy)
    relations: RelationNames = field(default_factory=RelationNames)
    access: AccessConfig | None = None


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(storage=get_storage_config(), access=get_access_config())
