"""Table backend on SQLAlchemy Core.

Every relation is a real table built from its ``TableSchema``. A catalog table
records each relation's schema and generation so a later process can resolve
relations created by an earlier one.
"""

from __future__ import annotations

import uuid
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError

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
    TableSchema,
    coerce_row,
)

from .types import column_type

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Connection, Engine

log = getLogger(__name__)

CATALOG_TABLE_NAME = "_mirrorgraph_catalog"

catalog_table = Table(
    CATALOG_TABLE_NAME,
    MetaData(),
    Column("name", String, primary_key=True),
    Column("generation", Integer, nullable=False),
    Column("schema", JSON, nullable=False),
    Column("active", Boolean, nullable=False, default=True),
)


def build_table(name: str, schema: TableSchema) -> Table:
    return Table(
        name,
        MetaData(),
        *(Column(column.name, column_type(column), nullable=True) for column in schema.columns),
    )


class SqlAlchemyTableBackend:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        catalog_table.create(engine, checkfirst=True)

    # Catalog ------------------------------------------------------------------

    def _catalog_row(self, conn: Connection, name: str) -> Any:
        stmt = select(catalog_table).where(catalog_table.c.name == name)
        return conn.execute(stmt).one_or_none()

    def _resolve_in(self, conn: Connection, name: str) -> TableHandle | None:
        row = self._catalog_row(conn, name)
        if row is None or not row.active:
            return None
        return TableHandle(
            name=name,
            schema=TableSchema.from_list(row.schema),
            generation=row.generation,
        )

    def _require_in(self, conn: Connection, name: str) -> tuple[TableHandle, Table]:
        handle = self._resolve_in(conn, name)
        if handle is None:
            raise NotFoundError(name)
        return handle, build_table(name, handle.schema)

    def _create_in(self, conn: Connection, name: str, schema: TableSchema) -> TableHandle:
        row = self._catalog_row(conn, name)
        if row is not None and row.active:
            raise StoreError(f"Relation {name!r} already exists")
        build_table(name, schema).create(conn)
        if row is None:
            generation = 1
            conn.execute(
                insert(catalog_table).values(
                    name=name, generation=generation, schema=schema.to_list(), active=True
                )
            )
        else:
            generation = row.generation + 1
            conn.execute(
                update(catalog_table)
                .where(catalog_table.c.name == name)
                .values(generation=generation, schema=schema.to_list(), active=True)
            )
        return TableHandle(name=name, schema=schema, generation=generation)

    def _drop_in(self, conn: Connection, name: str) -> None:
        handle = self._resolve_in(conn, name)
        schema = handle.schema if handle is not None else TableSchema(columns=())
        build_table(name, schema).drop(conn, checkfirst=True)
        conn.execute(
            update(catalog_table).where(catalog_table.c.name == name).values(active=False)
        )

    # TableBackend -------------------------------------------------------------

    def exists(self, name: str) -> bool:
        return self.resolve(name) is not None

    def resolve(self, name: str) -> TableHandle | None:
        try:
            with self.engine.connect() as conn:
                return self._resolve_in(conn, name)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not look up {name!r}: {exc}") from exc

    def create(self, name: str, schema: TableSchema) -> TableHandle:
        try:
            with self.engine.begin() as conn:
                return self._create_in(conn, name, schema)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not create {name!r}: {exc}") from exc

    def drop(self, name: str) -> None:
        try:
            with self.engine.begin() as conn:
                self._drop_in(conn, name)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not drop {name!r}: {exc}") from exc

    def insert_rows(self, handle: TableHandle, rows: Sequence[Row]) -> None:
        try:
            with self.engine.begin() as conn:
                self._insert_in(conn, handle, rows)
        except SQLAlchemyError as exc:
            raise StoreError(f"Insert into {handle.name!r} failed: {exc}") from exc

    def _insert_in(self, conn: Connection, handle: TableHandle, rows: Sequence[Row]) -> None:
        current = self._resolve_in(conn, handle.name)
        if current is None:
            raise NotFoundError(handle.name)
        if current.generation != handle.generation:
            raise NotFoundError(handle.name, f"Handle to {handle.name!r} is stale")

        known = set(current.schema.names)
        rejected = [row for row in rows if not set(row) <= known]
        if rejected:
            raise RowContentError(
                handle.name,
                f"{len(rejected)} row(s) carry fields unknown to {handle.name!r}",
                rejected=len(rejected),
            )
        table = build_table(handle.name, current.schema)
        conn.execute(insert(table), [dict(row) for row in rows])

    def execute(self, statement: Statement) -> Job:
        job_id = f"job_{uuid.uuid4().hex[:12]}"
        try:
            with self.engine.begin() as conn:
                affected = self._render(conn, statement)
        except (SQLAlchemyError, StoreError, TypeError, ValueError) as exc:
            log.debug("Job %s (%s) failed: %s", job_id, statement.kind, exc)
            return Job(job_id=job_id, kind=statement.kind, error=str(exc))
        return Job(job_id=job_id, kind=statement.kind, affected_rows=affected)

    def list_tables(self) -> list[TableHandle]:
        stmt = (
            select(catalog_table)
            .where(catalog_table.c.active.is_(True))
            .order_by(catalog_table.c.name)
        )
        try:
            with self.engine.connect() as conn:
                return [
                    TableHandle(
                        name=row.name,
                        schema=TableSchema.from_list(row.schema),
                        generation=row.generation,
                    )
                    for row in conn.execute(stmt)
                ]
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not list relations: {exc}") from exc

    def read_rows(self, name: str) -> list[Row]:
        try:
            with self.engine.connect() as conn:
                _, table = self._require_in(conn, name)
                return self._select_rows(conn, table)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not read {name!r}: {exc}") from exc

    # Statement rendering ------------------------------------------------------

    @staticmethod
    def _select_rows(conn: Connection, table: Table) -> list[Row]:
        return [dict(row._mapping) for row in conn.execute(select(table))]  # noqa: SLF001

    def _render(self, conn: Connection, statement: Statement) -> int:
        if isinstance(statement, InsertRow):
            handle, table = self._require_in(conn, statement.target)
            row = coerce_row(handle.schema, statement.row)
            unknown = set(row) - set(handle.schema.names)
            if unknown:
                raise StoreError(f"Unknown fields for {statement.target}: {sorted(unknown)}")
            conn.execute(insert(table).values(**row))
            return 1
        if isinstance(statement, DeleteAll):
            _, table = self._require_in(conn, statement.target)
            return conn.execute(delete(table)).rowcount
        if isinstance(statement, CopyAll):
            source_handle, source = self._require_in(conn, statement.source)
            target_handle, target = self._require_in(conn, statement.target)
            names = target_handle.schema.names
            if source_handle.schema.names != names:
                raise StoreError(f"Schema of {statement.source} does not match {statement.target}")
            copied = insert(target).from_select(
                list(names), select(*(source.c[name] for name in names))
            )
            return conn.execute(copied).rowcount
        if isinstance(statement, DerivePermutations):
            _, source = self._require_in(conn, statement.source)
            rows = derive_permutation_rows(self._select_rows(conn, source))
            self._drop_in(conn, statement.target)
            handle = self._create_in(conn, statement.target, PERMUTATION_SCHEMA)
            if rows:
                conn.execute(insert(build_table(handle.name, handle.schema)), rows)
            return len(rows)
        raise StoreError(f"Unsupported statement: {statement!r}")


def create_sql_backend(database_uri: str) -> SqlAlchemyTableBackend:
    return SqlAlchemyTableBackend(create_engine(database_uri, future=True))
