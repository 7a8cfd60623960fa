"""Error taxonomy for table-store and identity-graph operations."""

from __future__ import annotations


class StoreError(RuntimeError):
    """Base class for failures reported by a table backend."""


class NotFoundError(StoreError):
    """The relation is not (yet) visible or routable, or the handle is stale."""

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__(message or f"Relation {name!r} not found")
        self.name = name


class RowContentError(StoreError):
    """The store accepted the request but rejected rows because of their content."""

    def __init__(self, name: str, message: str, *, rejected: int = 0) -> None:
        super().__init__(message)
        self.name = name
        self.rejected = rejected


class StatementError(StoreError):
    """A structured statement did not complete or its job reported an error."""

    def __init__(self, message: str, *, job_id: str | None = None) -> None:
        super().__init__(message)
        self.job_id = job_id


class MalformedSnapshotError(ValueError):
    """A cluster snapshot or one of its identities violates the snapshot schema."""
