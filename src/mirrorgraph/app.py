"""Application orchestration entry points."""

from __future__ import annotations

import random
import time
from logging import getLogger
from typing import TYPE_CHECKING

from mirrorgraph.adapters.iam import ResourceManagerAccessPolicy
from mirrorgraph.adapters.memory import InMemoryTableBackend
from mirrorgraph.adapters.sqlalchemy import create_sql_backend
from mirrorgraph.config import PipelineConfig, get_pipeline_config
from mirrorgraph.domain.commands import (
    BuildCommand,
    Command,
    DeleteCommand,
    ShowFixturesCommand,
    TransitionCommand,
)
from mirrorgraph.domain.consistency import ConsistencyGuard
from mirrorgraph.domain.identity_graph import IdentityGraphStore
from mirrorgraph.domain.permutations import PermutationMaterializer
from mirrorgraph.domain.pipeline import (
    DirectiveResult,
    FixtureResult,
    IdentityPipeline,
    build,
    delete_all,
    transition,
)
from mirrorgraph.domain.tables import TableStore
from mirrorgraph.domain.transition import TransitionEngine
from mirrorgraph.sample_data import (
    default_start_time,
    generate_event_tables,
    generate_identity_graphs,
)

if TYPE_CHECKING:
    from datetime import datetime

    from mirrorgraph.domain.consistency import Sleep
    from mirrorgraph.domain.ports.access import AccessPolicy
    from mirrorgraph.domain.ports.backend import TableBackend

log = getLogger(__name__)


def create_backend(config: PipelineConfig) -> TableBackend:
    if config.storage.backend == "memory":
        return InMemoryTableBackend()
    return create_sql_backend(config.storage.database_uri())


def create_pipeline(
    config: PipelineConfig | None = None,
    *,
    backend: TableBackend | None = None,
    access: AccessPolicy | None = None,
    sleep: Sleep = time.sleep,
    rng: random.Random | None = None,
) -> IdentityPipeline:
    """Wire one isolated pipeline instance from explicit configuration."""

    effective_config = config or get_pipeline_config()
    effective_backend = backend if backend is not None else create_backend(effective_config)
    effective_access = access
    if effective_access is None and effective_config.access is not None:
        effective_access = ResourceManagerAccessPolicy(config=effective_config.access)

    policy = effective_config.consistency
    relations = effective_config.relations
    guard = ConsistencyGuard(effective_backend, policy, sleep=sleep, rng=rng)
    tables = TableStore(effective_backend, guard, policy, sleep=sleep)
    engine = TransitionEngine(tables, relations)
    return IdentityPipeline(
        tables=tables,
        graphs=IdentityGraphStore(tables, engine, relations),
        materializer=PermutationMaterializer(tables, relations),
        access=effective_access,
    )


def run_command(
    command: Command,
    *,
    pipeline: IdentityPipeline | None = None,
    start_time: datetime | None = None,
) -> DirectiveResult:
    """Execute one directive. Errors from build, transition and delete propagate."""

    start = start_time or default_start_time()
    if isinstance(command, ShowFixturesCommand):
        log.info("No directive provided, returning table data and identities")
        return FixtureResult(
            event_tables=generate_event_tables(start),
            identity_graphs=generate_identity_graphs(start),
        )

    active = pipeline or create_pipeline()
    if isinstance(command, BuildCommand):
        log.info("Building relations from source data")
        result = build(
            active,
            event_tables=generate_event_tables(start),
            identity_graphs=generate_identity_graphs(start),
        )
    elif isinstance(command, TransitionCommand):
        log.info("Transitioning the current identity graph to %s", command.day)
        result = transition(active, command.day)
    elif isinstance(command, DeleteCommand):
        log.info("Deleting all relations to start over")
        result = delete_all(active)
    else:
        raise ValueError(f"Unsupported command: {command!r}")

    log.info("All operations completed successfully")
    return result
