"""Reduce the current identity graph to its minimal chain of connecting pairs.

Within a cluster, identities are ordered by ``(first_seen, identity)`` and each
one is linked to the identity discovered just before it. N identities give N-1
edges; a lone identity gives one single-element edge. The derived relation is
always recomputed from scratch and replaced wholesale.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from mirrorgraph.config.storage import RelationNames

from .model import ClusterSnapshot, PermutationEdge
from .rows import edge_from_row, edge_to_row, snapshot_from_row
from .statements import DerivePermutations

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any

    from .statements import Row
    from .tables import TableStore

log = getLogger(__name__)


def latest_per_cluster(clusters: Iterable[ClusterSnapshot]) -> list[ClusterSnapshot]:
    """Keep the most recent snapshot of each cluster id."""

    latest: dict[str, ClusterSnapshot] = {}
    for cluster in clusters:
        known = latest.get(cluster.cluster_id)
        if known is None or cluster.as_of > known.as_of:
            latest[cluster.cluster_id] = cluster
    return [latest[key] for key in sorted(latest)]


def cluster_edges(cluster: ClusterSnapshot) -> list[PermutationEdge]:
    ordered = cluster.in_discovery_order()
    if not ordered:
        return []
    if len(ordered) == 1:
        return [PermutationEdge.between(cluster.cluster_id, [ordered[0].identity])]
    return [
        PermutationEdge.between(cluster.cluster_id, [earlier.identity, later.identity])
        for earlier, later in zip(ordered, ordered[1:], strict=False)
    ]


def chain_edges(clusters: Iterable[ClusterSnapshot]) -> list[PermutationEdge]:
    """Return the adjacent-pair edges of every cluster, sorted by cluster then joined ids."""

    edges = [edge for cluster in latest_per_cluster(clusters) for edge in cluster_edges(cluster)]
    return sorted(edges, key=lambda edge: edge.sort_key)


def derive_permutation_rows(source_rows: Iterable[Mapping[str, Any]]) -> list[Row]:
    """What a backend computes when it executes ``DerivePermutations``."""

    return [edge_to_row(edge) for edge in chain_edges(snapshot_from_row(row) for row in source_rows)]


class PermutationMaterializer:
    """Owns the derived permutation relation."""

    def __init__(self, tables: TableStore, relations: RelationNames | None = None) -> None:
        self.tables = tables
        self.relations = relations or RelationNames()

    def materialize(self) -> int:
        log.info("Materializing %s", self.relations.permutations)
        job = self.tables.run_statement(
            DerivePermutations(source=self.relations.current, target=self.relations.permutations)
        )
        log.info("%s replaced with %s edge(s)", self.relations.permutations, job.affected_rows)
        return job.affected_rows

    def edges(self) -> list[PermutationEdge]:
        rows = self.tables.read(self.relations.permutations)
        return sorted((edge_from_row(row) for row in rows), key=lambda edge: edge.sort_key)
