"""Day-keyed identity-graph snapshots plus the single mutable current graph."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from mirrorgraph.config.storage import RelationNames

from .model import IdentityGraph
from .rows import snapshot_from_row, snapshot_to_row, validate_cluster
from .statements import IDENTITY_CLUSTER_SCHEMA, InsertRow

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import ClusterSnapshot, DayKey
    from .tables import TableStore
    from .transition import TransitionEngine

log = getLogger(__name__)


class IdentityGraphStore:
    """Owns every day snapshot relation and, through the engine, the current one."""

    def __init__(
        self,
        tables: TableStore,
        engine: TransitionEngine,
        relations: RelationNames | None = None,
    ) -> None:
        self.tables = tables
        self.engine = engine
        self.relations = relations or RelationNames()

    def put_snapshot(self, day_key: DayKey, clusters: Iterable[ClusterSnapshot]) -> int:
        """Persist ``clusters`` as the snapshot for ``day_key``, replacing any previous one.

        Every cluster is validated before the store is touched, so a malformed
        entry leaves nothing behind. Rows are written as one insert statement each
        because nested repeated records are not streamed.
        """

        rows = [snapshot_to_row(validate_cluster(cluster)) for cluster in clusters]
        name = self.relations.snapshot(day_key)

        handle = self.tables.create_or_replace(name, IDENTITY_CLUSTER_SCHEMA)
        if not self.tables.ensure_ready(handle):
            log.warning("Relation %s not confirmed ready, inserting anyway", name)

        for row in rows:
            self.tables.run_statement(InsertRow(target=name, row=row))
        log.info("Stored %s cluster(s) for %s", len(rows), day_key)
        return len(rows)

    def get_snapshot(self, day_key: DayKey) -> IdentityGraph:
        return self._read(self.relations.snapshot(day_key))

    def set_current(self, day_key: DayKey) -> None:
        self.engine.set_current(day_key)

    def get_current(self) -> IdentityGraph:
        return self._read(self.relations.current)

    def _read(self, name: str) -> IdentityGraph:
        return IdentityGraph.of(snapshot_from_row(row) for row in self.tables.read(name))
