"""Conversion between identity-graph domain types and relation rows."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from .errors import MalformedSnapshotError
from .model import ClusterSnapshot, Identity, PermutationEdge
from .statements import Row, parse_timestamp


def _require_text(value: object, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MalformedSnapshotError(f"{what} must be a non-empty string, got {value!r}")
    return value


def _require_timestamp(value: object, what: str) -> datetime:
    if not isinstance(value, datetime):
        raise MalformedSnapshotError(f"{what} must be a datetime, got {value!r}")
    if value.tzinfo is None:
        raise MalformedSnapshotError(f"{what} must include timezone information")
    return value


def validate_identity(item: object, *, cluster_id: str) -> Identity:
    if not isinstance(item, Identity):
        raise MalformedSnapshotError(f"Cluster {cluster_id!r} holds a non-identity entry: {item!r}")
    _require_text(item.identity, f"Identity in cluster {cluster_id!r}")
    _require_text(item.type, f"Type tag of {item.identity!r}")
    _require_timestamp(item.first_seen, f"first_seen of {item.identity!r}")
    return item


def validate_cluster(snapshot: object) -> ClusterSnapshot:
    """Check one snapshot completely; raise ``MalformedSnapshotError`` on the first defect."""

    if not isinstance(snapshot, ClusterSnapshot):
        raise MalformedSnapshotError(f"Expected a ClusterSnapshot, got {snapshot!r}")
    cluster_id = _require_text(snapshot.cluster_id, "cluster_id")
    _require_timestamp(snapshot.as_of, f"as_of of cluster {cluster_id!r}")
    if not isinstance(snapshot.identities, Iterable):
        raise MalformedSnapshotError(f"Cluster {cluster_id!r} identities are not iterable")

    seen: set[tuple[str, str]] = set()
    for item in snapshot.identities:
        identity = validate_identity(item, cluster_id=cluster_id)
        if identity.key in seen:
            raise MalformedSnapshotError(
                f"Cluster {cluster_id!r} lists {identity.identity!r} ({identity.type}) twice"
            )
        seen.add(identity.key)
    return snapshot


def snapshot_to_row(snapshot: ClusterSnapshot) -> Row:
    return {
        "cluster_id": snapshot.cluster_id,
        "as_of": snapshot.as_of,
        "identities": [
            {"identity": item.identity, "type": item.type, "first_seen": item.first_seen}
            for item in snapshot.in_discovery_order()
        ],
    }


def snapshot_from_row(row: Mapping[str, Any]) -> ClusterSnapshot:
    identities = [
        Identity(
            identity=str(item["identity"]),
            type=str(item["type"]),
            first_seen=parse_timestamp(item["first_seen"]),
        )
        for item in row.get("identities") or ()
    ]
    return ClusterSnapshot.of(
        cluster_id=str(row["cluster_id"]),
        as_of=parse_timestamp(row["as_of"]),
        identities=identities,
    )


def edge_to_row(edge: PermutationEdge) -> Row:
    return {
        "cluster_id": edge.cluster_id,
        "ids": list(edge.ids),
        "on_behalf_of": edge.on_behalf_of,
        "payload": dict(edge.payload),
    }


def edge_from_row(row: Mapping[str, Any]) -> PermutationEdge:
    return PermutationEdge(
        cluster_id=str(row["cluster_id"]),
        ids=tuple(str(item) for item in row["ids"]),
        on_behalf_of=str(row["on_behalf_of"]),
        payload=dict(row.get("payload") or {}),
    )
