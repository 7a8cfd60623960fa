"""In-process table backend that behaves like an eventually-consistent store.

A freshly created relation stays invisible for ``existence_lag`` existence checks
and rejects the next ``routing_lag`` writes as not found, even once visible.
Re-creating a relation bumps its generation, so handles to the old incarnation
go stale. Statement failures can be injected per statement kind.
"""

from __future__ import annotations

import copy
import itertools
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mirrorgraph.domain.errors import NotFoundError, RowContentError, StoreError
from mirrorgraph.domain.permutations import derive_permutation_rows
from mirrorgraph.domain.ports.backend import TableHandle
from mirrorgraph.domain.statements import (
    PERMUTATION_SCHEMA,
    CopyAll,
    DeleteAll,
    DerivePermutations,
    InsertRow,
    Job,
    Row,
    Statement,
    StatementKind,
    TableSchema,
    coerce_row,
)

if TYPE_CHECKING:
    from collections.abc import Sequence


class _JobFailedError(Exception):
    pass


@dataclass(slots=True)
class _StoredTable:
    handle: TableHandle
    rows: list[Row] = field(default_factory=list[Row])
    hidden_checks: int = 0
    unroutable_writes: int = 0

    @property
    def visible(self) -> bool:
        return self.hidden_checks == 0


class InMemoryTableBackend:
    def __init__(self, *, existence_lag: int = 0, routing_lag: int = 0) -> None:
        self.existence_lag = existence_lag
        self.routing_lag = routing_lag
        self.executed: list[Statement] = []
        self._tables: dict[str, _StoredTable] = {}
        self._generations = itertools.count(1)
        self._failures: dict[StatementKind, str] = {}

    # Test hooks ---------------------------------------------------------------

    def inject_failure(self, kind: StatementKind, message: str = "injected failure") -> None:
        self._failures[kind] = message

    def clear_failures(self) -> None:
        self._failures.clear()

    # TableBackend -------------------------------------------------------------

    def exists(self, name: str) -> bool:
        table = self._tables.get(name)
        if table is None:
            return False
        if table.hidden_checks > 0:
            table.hidden_checks -= 1
            return False
        return True

    def resolve(self, name: str) -> TableHandle | None:
        table = self._tables.get(name)
        return None if table is None else table.handle

    def create(self, name: str, schema: TableSchema) -> TableHandle:
        if name in self._tables:
            raise StoreError(f"Relation {name!r} already exists")
        handle = TableHandle(name=name, schema=schema, generation=next(self._generations))
        self._tables[name] = _StoredTable(
            handle=handle,
            hidden_checks=self.existence_lag,
            unroutable_writes=self.routing_lag,
        )
        return handle

    def drop(self, name: str) -> None:
        self._tables.pop(name, None)

    def insert_rows(self, handle: TableHandle, rows: Sequence[Row]) -> None:
        table = self._tables.get(handle.name)
        if table is None or not table.visible:
            raise NotFoundError(handle.name)
        if table.handle.generation != handle.generation:
            raise NotFoundError(handle.name, f"Handle to {handle.name!r} is stale")
        if table.unroutable_writes > 0:
            table.unroutable_writes -= 1
            raise NotFoundError(handle.name, f"Relation {handle.name!r} not routable yet")

        known = set(table.handle.schema.names)
        rejected = [row for row in rows if not set(row) <= known]
        if rejected:
            raise RowContentError(
                handle.name,
                f"{len(rejected)} row(s) carry fields unknown to {handle.name!r}",
                rejected=len(rejected),
            )
        table.rows.extend(copy.deepcopy(list(rows)))

    def execute(self, statement: Statement) -> Job:
        self.executed.append(statement)
        job_id = f"job_{uuid.uuid4().hex[:12]}"
        failure = self._failures.get(statement.kind)
        if failure is not None:
            return Job(job_id=job_id, kind=statement.kind, error=failure)
        try:
            affected = self._apply(statement)
        except _JobFailedError as exc:
            return Job(job_id=job_id, kind=statement.kind, error=str(exc))
        return Job(job_id=job_id, kind=statement.kind, affected_rows=affected)

    def list_tables(self) -> list[TableHandle]:
        return [self._tables[name].handle for name in sorted(self._tables)]

    def read_rows(self, name: str) -> list[Row]:
        table = self._tables.get(name)
        if table is None:
            raise NotFoundError(name)
        return copy.deepcopy(table.rows)

    # Statement rendering ------------------------------------------------------

    def _apply(self, statement: Statement) -> int:
        if isinstance(statement, InsertRow):
            target = self._require(statement.target)
            try:
                row = coerce_row(target.handle.schema, statement.row)
            except (TypeError, ValueError) as exc:
                raise _JobFailedError(str(exc)) from exc
            unknown = set(row) - set(target.handle.schema.names)
            if unknown:
                raise _JobFailedError(f"Unknown fields for {statement.target}: {sorted(unknown)}")
            target.rows.append(row)
            return 1
        if isinstance(statement, DeleteAll):
            target = self._require(statement.target)
            removed = len(target.rows)
            target.rows.clear()
            return removed
        if isinstance(statement, CopyAll):
            source = self._require(statement.source)
            target = self._require(statement.target)
            if source.handle.schema.names != target.handle.schema.names:
                raise _JobFailedError(
                    f"Schema of {statement.source} does not match {statement.target}"
                )
            target.rows.extend(copy.deepcopy(source.rows))
            return len(source.rows)
        if isinstance(statement, DerivePermutations):
            source = self._require(statement.source)
            rows = derive_permutation_rows(source.rows)
            handle = TableHandle(
                name=statement.target,
                schema=PERMUTATION_SCHEMA,
                generation=next(self._generations),
            )
            self._tables[statement.target] = _StoredTable(handle=handle, rows=rows)
            return len(rows)
        raise _JobFailedError(f"Unsupported statement: {statement!r}")

    def _require(self, name: str) -> _StoredTable:
        table = self._tables.get(name)
        if table is None or not table.visible:
            raise _JobFailedError(f"Not found: relation {name}")
        return table
