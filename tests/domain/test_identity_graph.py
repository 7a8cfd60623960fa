from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import pytest

from mirrorgraph.domain.errors import MalformedSnapshotError, NotFoundError
from mirrorgraph.domain.model import ClusterSnapshot, DayKey, Identity
from mirrorgraph.domain.rows import snapshot_to_row
from mirrorgraph.domain.statements import InsertRow
from tests.helpers.identities import T0, make_cluster

if TYPE_CHECKING:
    from mirrorgraph.adapters.memory import InMemoryTableBackend
    from mirrorgraph.domain.pipeline import IdentityPipeline


def test_put_snapshot_round_trips(memory_pipeline: IdentityPipeline) -> None:
    graphs = memory_pipeline.graphs
    clusters = [make_cluster(["foo", "bar"], cluster_id="c1"), make_cluster(["baz"], cluster_id="c2")]

    stored = graphs.put_snapshot(DayKey.TODAY, clusters)

    snapshot = graphs.get_snapshot(DayKey.TODAY)
    assert stored == 2
    assert snapshot.cluster_ids == ("c1", "c2")
    assert set(snapshot) == set(clusters)


def test_put_snapshot_writes_one_statement_per_cluster(
    memory_pipeline: IdentityPipeline, memory_backend: InMemoryTableBackend
) -> None:
    clusters = [make_cluster(["foo"], cluster_id=f"c{index}") for index in range(3)]

    memory_pipeline.graphs.put_snapshot(DayKey.YESTERDAY, clusters)

    inserts = [stmt for stmt in memory_backend.executed if isinstance(stmt, InsertRow)]
    assert [stmt.target for stmt in inserts] == ["identities_yesterday"] * 3


def test_put_snapshot_replaces_previous_contents(memory_pipeline: IdentityPipeline) -> None:
    graphs = memory_pipeline.graphs
    graphs.put_snapshot(DayKey.TODAY, [make_cluster(["foo"])])

    graphs.put_snapshot(DayKey.TODAY, [make_cluster(["foo", "bar"])])

    assert graphs.get_snapshot(DayKey.TODAY).identity_names() == frozenset({"foo", "bar"})


def test_put_snapshot_accepts_empty_graph(memory_pipeline: IdentityPipeline) -> None:
    graphs = memory_pipeline.graphs

    assert graphs.put_snapshot(DayKey.TOMORROW, []) == 0
    assert graphs.get_snapshot(DayKey.TOMORROW).is_empty


def test_malformed_snapshot_leaves_store_untouched(
    memory_pipeline: IdentityPipeline, memory_backend: InMemoryTableBackend
) -> None:
    broken = ClusterSnapshot.of(
        "c2",
        T0,
        [Identity("bar", "user_id", datetime(2025, 3, 1))],  # noqa: DTZ001
    )

    with pytest.raises(MalformedSnapshotError):
        memory_pipeline.graphs.put_snapshot(DayKey.TODAY, [make_cluster(["foo"]), broken])

    assert memory_backend.resolve("identities_today") is None
    assert memory_backend.executed == []


def test_get_current_always_reads_the_store(
    memory_pipeline: IdentityPipeline, memory_backend: InMemoryTableBackend
) -> None:
    graphs = memory_pipeline.graphs
    graphs.put_snapshot(DayKey.TODAY, [make_cluster(["foo"], cluster_id="c1")])
    graphs.set_current(DayKey.TODAY)
    assert graphs.get_current().cluster_ids == ("c1",)

    extra = snapshot_to_row(make_cluster(["zed"], cluster_id="c9"))
    memory_pipeline.tables.run_statement(InsertRow(target="identities_current", row=extra))

    assert graphs.get_current().cluster_ids == ("c1", "c9")
    assert memory_backend.read_rows("identities_today")[0]["cluster_id"] == "c1"


def test_get_snapshot_of_unknown_day_raises(memory_pipeline: IdentityPipeline) -> None:
    with pytest.raises(NotFoundError):
        memory_pipeline.graphs.get_snapshot(DayKey.DAY_AFTER_TOMORROW)
