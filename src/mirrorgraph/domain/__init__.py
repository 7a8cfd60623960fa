"""Identity-graph domain: snapshots, transitions and derived permutations."""

from __future__ import annotations

from .consistency import ConsistencyGuard, ProbeOutcome, classify_probe_error, poll
from .errors import (
    MalformedSnapshotError,
    NotFoundError,
    RowContentError,
    StatementError,
    StoreError,
)
from .identity_graph import IdentityGraphStore
from .model import ClusterSnapshot, DayKey, Identity, IdentityGraph, IdentityType, PermutationEdge
from .permutations import PermutationMaterializer, chain_edges
from .tables import TableStore
from .transition import TransitionEngine

__all__ = [
    "ClusterSnapshot",
    "ConsistencyGuard",
    "DayKey",
    "Identity",
    "IdentityGraph",
    "IdentityGraphStore",
    "IdentityType",
    "MalformedSnapshotError",
    "NotFoundError",
    "PermutationEdge",
    "PermutationMaterializer",
    "ProbeOutcome",
    "RowContentError",
    "StatementError",
    "StoreError",
    "TableStore",
    "TransitionEngine",
    "chain_edges",
    "classify_probe_error",
    "poll",
]
