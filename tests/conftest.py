from __future__ import annotations

import random
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from mirrorgraph.adapters.memory import InMemoryTableBackend
from mirrorgraph.adapters.sqlalchemy import SqlAlchemyTableBackend
from mirrorgraph.app import create_pipeline
from mirrorgraph.config import ConsistencyPolicy, PipelineConfig, StorageConfig
from mirrorgraph.domain.consistency import ConsistencyGuard
from mirrorgraph.domain.tables import TableStore
from tests.helpers.identities import RecordingSleep

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from mirrorgraph.domain.pipeline import IdentityPipeline
    from mirrorgraph.domain.ports.access import AccessPolicy
    from mirrorgraph.domain.ports.backend import TableBackend


@pytest.fixture
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def policy() -> ConsistencyPolicy:
    return ConsistencyPolicy()


@pytest.fixture
def memory_backend() -> InMemoryTableBackend:
    return InMemoryTableBackend()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_backend(sqlite_engine: Engine) -> SqlAlchemyTableBackend:
    return SqlAlchemyTableBackend(sqlite_engine)


@pytest.fixture
def table_store_factory(
    sleeps: RecordingSleep,
    rng: random.Random,
    policy: ConsistencyPolicy,
) -> Callable[[TableBackend], TableStore]:
    def factory(backend: TableBackend) -> TableStore:
        guard = ConsistencyGuard(backend, policy, sleep=sleeps, rng=rng)
        return TableStore(backend, guard, policy, sleep=sleeps)

    return factory


@pytest.fixture
def table_store(
    table_store_factory: Callable[[TableBackend], TableStore],
    memory_backend: InMemoryTableBackend,
) -> TableStore:
    return table_store_factory(memory_backend)


@pytest.fixture
def pipeline_factory(
    tmp_path: Path,
    sleeps: RecordingSleep,
    rng: random.Random,
) -> Callable[..., IdentityPipeline]:
    config = PipelineConfig(storage=StorageConfig(data_dir=tmp_path, backend="memory"))

    def factory(backend: TableBackend, *, access: AccessPolicy | None = None) -> IdentityPipeline:
        return create_pipeline(config, backend=backend, access=access, sleep=sleeps, rng=rng)

    return factory


@pytest.fixture
def memory_pipeline(
    pipeline_factory: Callable[..., IdentityPipeline],
    memory_backend: InMemoryTableBackend,
) -> IdentityPipeline:
    return pipeline_factory(memory_backend)
