"""Identity-graph domain types (pure, dependency-light)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


class DayKey(StrEnum):
    """Named snapshot slots, in advisory chronological order."""

    YESTERDAY = "yesterday"
    TODAY = "today"
    TOMORROW = "tomorrow"
    DAY_AFTER_TOMORROW = "day_after_tomorrow"

    @classmethod
    def ordered(cls) -> tuple[DayKey, ...]:
        return tuple(cls)

    @classmethod
    def initial(cls) -> DayKey:
        return cls.ordered()[0]

    @classmethod
    def transition_targets(cls) -> tuple[DayKey, ...]:
        return cls.ordered()[1:]

    @property
    def position(self) -> int:
        return self.ordered().index(self)


class IdentityType(StrEnum):
    """Well-known identity tags. The ``type`` field of an identity is open-ended."""

    ANON_ID = "anon_id"
    USER_ID = "user_id"
    CRM_USER_ID = "crm_user_id"
    MASTER_USER_ID = "master_user_id"


@dataclass(frozen=True, slots=True)
class Identity:
    identity: str
    type: str
    first_seen: datetime

    @property
    def key(self) -> tuple[str, str]:
        return (self.identity, self.type)

    @property
    def discovery_order(self) -> tuple[datetime, str]:
        return (self.first_seen, self.identity)


@dataclass(frozen=True, slots=True)
class ClusterSnapshot:
    """One cluster as known at ``as_of``."""

    cluster_id: str
    as_of: datetime
    identities: frozenset[Identity] = field(default_factory=frozenset[Identity])

    @classmethod
    def of(cls, cluster_id: str, as_of: datetime, identities: Iterable[Identity]) -> ClusterSnapshot:
        return cls(cluster_id=cluster_id, as_of=as_of, identities=frozenset(identities))

    def in_discovery_order(self) -> list[Identity]:
        return sorted(self.identities, key=lambda item: item.discovery_order)


@dataclass(frozen=True, slots=True)
class IdentityGraph:
    """The cluster snapshots held by one relation (a day slot or the current graph)."""

    clusters: tuple[ClusterSnapshot, ...] = ()

    @classmethod
    def of(cls, clusters: Iterable[ClusterSnapshot]) -> IdentityGraph:
        return cls(clusters=tuple(sorted(clusters, key=lambda c: (c.cluster_id, c.as_of))))

    def __iter__(self) -> Iterator[ClusterSnapshot]:
        return iter(self.clusters)

    def __len__(self) -> int:
        return len(self.clusters)

    @property
    def is_empty(self) -> bool:
        return not self.clusters

    @property
    def cluster_ids(self) -> tuple[str, ...]:
        return tuple(cluster.cluster_id for cluster in self.clusters)

    def identity_names(self) -> frozenset[str]:
        return frozenset(item.identity for cluster in self.clusters for item in cluster.identities)

    def same_membership(self, other: IdentityGraph) -> bool:
        """Compare by cluster id and identity set, ignoring ``as_of``."""

        return _membership(self) == _membership(other)


def _membership(graph: IdentityGraph) -> dict[str, frozenset[Identity]]:
    return {cluster.cluster_id: cluster.identities for cluster in graph.clusters}


@dataclass(frozen=True, slots=True)
class PermutationEdge:
    """A derived connecting pair (or a singleton) within one cluster."""

    cluster_id: str
    ids: tuple[str, ...]
    on_behalf_of: str
    payload: Mapping[str, Any]

    @classmethod
    def between(cls, cluster_id: str, ids: Iterable[str]) -> PermutationEdge:
        id_tuple = tuple(ids)
        if len(id_tuple) not in (1, 2):
            raise ValueError(f"An edge carries one or two ids, got {len(id_tuple)}")
        return cls(
            cluster_id=cluster_id,
            ids=id_tuple,
            on_behalf_of=id_tuple[0],
            payload={"$distinct_ids": list(id_tuple)},
        )

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.cluster_id, ",".join(self.ids))
