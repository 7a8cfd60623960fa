"""Moves the mutable ``current`` relation from one day snapshot to another."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from mirrorgraph.config.storage import RelationNames

from .errors import StatementError
from .statements import IDENTITY_CLUSTER_SCHEMA, CopyAll, DeleteAll

if TYPE_CHECKING:
    from .model import DayKey
    from .tables import TableStore

log = getLogger(__name__)


class TransitionEngine:
    """State machine over the ``current`` pointer.

    States are ``None`` (unset) and the ``DayKey`` values. Any key may follow any
    state; the chronological order of ``DayKey`` is advisory only. A transition is
    an unconditional clear followed by a full copy, executed as two separate
    statements. If the copy fails the relation stays empty, ``current_day`` drops
    back to ``None`` and ``cleared`` is set until a later transition succeeds.
    """

    def __init__(self, tables: TableStore, relations: RelationNames | None = None) -> None:
        self.tables = tables
        self.relations = relations or RelationNames()
        self.current_day: DayKey | None = None
        self.cleared = False

    def set_current(self, target: DayKey) -> None:
        current = self.relations.current
        source = self.relations.snapshot(target)
        previous = self.current_day

        self._ensure_current_relation()

        self.tables.run_statement(DeleteAll(target=current))
        self.current_day = None
        self.cleared = True
        try:
            self.tables.run_statement(CopyAll(source=source, target=current))
        except StatementError:
            log.error(
                "Copy from %s failed after %s was cleared; %s is left empty",
                source,
                current,
                current,
            )
            raise

        self.current_day = target
        self.cleared = False
        log.info("Current identity graph moved from %s to %s", previous or "unset", target)

    def _ensure_current_relation(self) -> None:
        name = self.relations.current
        if self.tables.backend.exists(name):
            return
        log.info("Relation %s absent, creating it for first use", name)
        handle = self.tables.create_or_replace(name, IDENTITY_CLUSTER_SCHEMA)
        if not self.tables.ensure_ready(handle):
            log.warning("Relation %s not confirmed ready, continuing", name)
