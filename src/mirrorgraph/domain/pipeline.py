"""Application services for building and transitioning the identity pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .model import DayKey
from .statements import infer_schema

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .identity_graph import IdentityGraphStore
    from .model import ClusterSnapshot, PermutationEdge
    from .permutations import PermutationMaterializer
    from .ports.access import AccessGrant, AccessPolicy
    from .statements import Row
    from .tables import TableStore

log = getLogger(__name__)


@dataclass(slots=True)
class IdentityPipeline:
    """The wired components of one isolated pipeline instance."""

    tables: TableStore
    graphs: IdentityGraphStore
    materializer: PermutationMaterializer
    access: AccessPolicy | None = None

    @property
    def current_day(self) -> DayKey | None:
        return self.graphs.engine.current_day


@dataclass(slots=True)
class BuildResult:
    loaded_tables: dict[str, int]
    snapshots: tuple[DayKey, ...]
    current_day: DayKey
    edges: list[PermutationEdge]
    grants: list[AccessGrant] = field(default_factory=list)


@dataclass(slots=True)
class TransitionResult:
    previous_day: DayKey | None
    current_day: DayKey
    edges: list[PermutationEdge]


@dataclass(slots=True)
class DeleteResult:
    deleted: tuple[str, ...]


@dataclass(slots=True)
class FixtureResult:
    event_tables: dict[str, list[Row]]
    identity_graphs: dict[DayKey, list[ClusterSnapshot]]


type DirectiveResult = BuildResult | TransitionResult | DeleteResult | FixtureResult


def grant_access(pipeline: IdentityPipeline) -> list[AccessGrant]:
    """Apply access grants; failures are logged and never stop the pipeline."""

    if pipeline.access is None:
        log.info("No access policy configured, skipping grants")
        return []
    try:
        grants = pipeline.access.ensure_grants()
    except Exception:
        log.exception("Access grants failed; continuing without them")
        return []
    log.info("Access grants applied: %s", len(grants))
    return grants


def load_event_table(pipeline: IdentityPipeline, name: str, rows: Sequence[Row]) -> int:
    tables = pipeline.tables
    if not rows:
        log.warning("Skipping %s: no rows to insert", name)
        return 0

    handle = tables.create_or_replace(name, infer_schema(rows[0]))
    if not tables.ensure_ready(handle):
        log.warning("Relation %s not confirmed ready, inserting anyway", name)
    inserted = tables.insert_with_refresh(handle, rows)
    log.info("Relation %s created and loaded", name)
    return inserted


def build(
    pipeline: IdentityPipeline,
    *,
    event_tables: Mapping[str, Sequence[Row]],
    identity_graphs: Mapping[DayKey, Sequence[ClusterSnapshot]],
) -> BuildResult:
    """Load everything from scratch, point current at the first day and materialize."""

    grants = grant_access(pipeline)

    loaded = {name: load_event_table(pipeline, name, rows) for name, rows in event_tables.items()}

    stored: list[DayKey] = []
    for day in DayKey.ordered():
        clusters = identity_graphs.get(day)
        if clusters is None:
            log.warning("No identity graph for %s", day)
            continue
        pipeline.graphs.put_snapshot(day, clusters)
        stored.append(day)

    if not stored:
        raise ValueError("Build needs at least one day snapshot")
    initial = stored[0]
    pipeline.graphs.set_current(initial)
    pipeline.materializer.materialize()

    return BuildResult(
        loaded_tables=loaded,
        snapshots=tuple(stored),
        current_day=initial,
        edges=pipeline.materializer.edges(),
        grants=grants,
    )


def transition(pipeline: IdentityPipeline, day: DayKey) -> TransitionResult:
    previous = pipeline.current_day
    pipeline.graphs.set_current(day)
    pipeline.materializer.materialize()
    return TransitionResult(
        previous_day=previous,
        current_day=day,
        edges=pipeline.materializer.edges(),
    )


def delete_all(pipeline: IdentityPipeline) -> DeleteResult:
    names = tuple(handle.name for handle in pipeline.tables.list())
    for name in names:
        pipeline.tables.delete(name)
    log.info("Deleted %s relation(s)", len(names))
    return DeleteResult(deleted=names)
