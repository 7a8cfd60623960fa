"""Create, replace, fill and query named relations on an eventually-consistent store."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

from mirrorgraph.config.consistency import ConsistencyPolicy

from .errors import NotFoundError, StatementError
from .statements import coerce_row

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .consistency import ConsistencyGuard, Sleep
    from .ports.backend import TableBackend, TableHandle
    from .statements import Job, Row, Statement, TableSchema

log = getLogger(__name__)


class TableStore:
    """Relation-level operations layered over a ``TableBackend``.

    ``create_or_replace`` never waits for the new relation to become usable; call
    ``ensure_ready`` with the retry budget that suits the use site before the first
    write.
    """

    def __init__(
        self,
        backend: TableBackend,
        guard: ConsistencyGuard,
        policy: ConsistencyPolicy | None = None,
        *,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.backend = backend
        self.guard = guard
        self.policy = policy or ConsistencyPolicy()
        self._sleep = sleep

    def create_or_replace(self, name: str, schema: TableSchema) -> TableHandle:
        # no atomic schema replacement: the old relation must be gone first
        if self.backend.exists(name):
            log.info("Deleting existing relation %s", name)
            self.backend.drop(name)
            self._sleep(self.policy.delete_settle_seconds)

        log.info("Creating relation %s", name)
        handle = self.backend.create(name, schema)
        self._sleep(self.policy.create_settle_seconds)
        return handle

    def ensure_ready(
        self,
        handle: TableHandle,
        *,
        existence_attempts: int | None = None,
        write_attempts: int | None = None,
    ) -> bool:
        """Wait for existence, then writability. ``False`` means the budget ran out."""

        if not self.guard.await_existence(handle, max_attempts=existence_attempts):
            return False
        return self.guard.await_writable(handle, max_attempts=write_attempts)

    def handle(self, name: str) -> TableHandle:
        handle = self.backend.resolve(name)
        if handle is None:
            raise NotFoundError(name)
        return handle

    def insert(self, handle: TableHandle, rows: Sequence[Row]) -> int:
        if not rows:
            log.warning("No rows to insert for %s", handle.name)
            return 0
        if not self.backend.exists(handle.name):
            raise NotFoundError(handle.name, f"Relation {handle.name!r} does not exist at insert time")

        prepared = [coerce_row(handle.schema, row) for row in rows]
        log.info("Inserting %s rows into %s", len(prepared), handle.name)
        self.backend.insert_rows(handle, prepared)
        return len(prepared)

    def insert_with_refresh(self, handle: TableHandle, rows: Sequence[Row]) -> int:
        """Insert, re-resolving the relation once if the store reports it missing."""

        try:
            return self.insert(handle, rows)
        except NotFoundError:
            log.warning("Relation %s not found, retrying with a fresh reference", handle.name)

        fresh = self.handle(handle.name)
        self.ensure_ready(
            fresh,
            existence_attempts=self.policy.refresh_existence_attempts,
            write_attempts=self.policy.refresh_write_attempts,
        )
        inserted = self.insert(fresh, rows)
        log.info("Retry with fresh reference succeeded for %s", handle.name)
        return inserted

    def run_statement(self, statement: Statement) -> Job:
        log.debug("Running %s statement", statement.kind)
        job = self.backend.execute(statement)
        if job.error is not None:
            raise StatementError(
                f"{statement.kind} statement failed: {job.error}", job_id=job.job_id
            )
        if not job.succeeded:
            raise StatementError(
                f"{statement.kind} statement did not complete (state={job.state})",
                job_id=job.job_id,
            )
        return job

    def delete(self, name: str) -> None:
        log.info("Deleting relation %s", name)
        self.backend.drop(name)

    def list(self) -> list[TableHandle]:
        return self.backend.list_tables()

    def read(self, name: str) -> list[Row]:
        return self.backend.read_rows(name)
