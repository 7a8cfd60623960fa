"""Builders and fakes for identity-graph tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from mirrorgraph.domain.model import ClusterSnapshot, Identity, IdentityType

if TYPE_CHECKING:
    from collections.abc import Iterable

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class RecordingSleep:
    """Stand-in for ``time.sleep`` that only records the requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_identity(
    name: str,
    kind: str = IdentityType.ANON_ID.value,
    *,
    minute: float = 0,
) -> Identity:
    return Identity(identity=name, type=kind, first_seen=T0 + timedelta(minutes=minute))


def make_cluster(
    names: Iterable[str],
    *,
    cluster_id: str = "cluster-1",
    as_of: datetime = T0,
) -> ClusterSnapshot:
    """Cluster whose identities are discovered one minute apart, in the given order."""

    return ClusterSnapshot.of(
        cluster_id,
        as_of,
        (make_identity(name, minute=index) for index, name in enumerate(names)),
    )
