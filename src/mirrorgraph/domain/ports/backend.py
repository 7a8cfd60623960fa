"""Port for the primitive operations of a table store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mirrorgraph.domain.statements import Job, Row, Statement, TableSchema


@dataclass(frozen=True, slots=True)
class TableHandle:
    """Reference to one incarnation of a named relation.

    ``generation`` changes whenever the relation is re-created; a handle from an
    older generation is stale and writes through it fail with ``NotFoundError``.
    """

    name: str
    schema: TableSchema
    generation: int = 0


@runtime_checkable
class TableBackend(Protocol):
    """Primitive, possibly eventually-consistent, relation operations."""

    def exists(self, name: str) -> bool: ...

    def resolve(self, name: str) -> TableHandle | None: ...

    def create(self, name: str, schema: TableSchema) -> TableHandle: ...

    def drop(self, name: str) -> None: ...

    def insert_rows(self, handle: TableHandle, rows: Sequence[Row]) -> None: ...

    def execute(self, statement: Statement) -> Job: ...

    def list_tables(self) -> list[TableHandle]: ...

    def read_rows(self, name: str) -> list[Row]: ...
