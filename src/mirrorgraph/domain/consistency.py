"""Bounded, jittered polling against an eventually-consistent table store.

Right after a create or delete the store may still answer "not found" for a
relation that exists, and a relation can become visible to reads before it is
routable for writes. The guard therefore probes in two phases: existence first,
then writability via a throwaway record that the store must reject for its
content rather than for its target.
"""

from __future__ import annotations

import random
import time
import uuid
from collections.abc import Callable
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from mirrorgraph.config.consistency import ConsistencyPolicy

from .errors import NotFoundError, RowContentError, StoreError

if TYPE_CHECKING:
    from mirrorgraph.domain.ports.backend import TableBackend, TableHandle

log = getLogger(__name__)

type Sleep = Callable[[float], None]


class ProbeOutcome(StrEnum):
    READY = "ready"
    RETRY = "retry"
    FATAL = "fatal"


def classify_probe_error(exc: BaseException) -> ProbeOutcome:
    """Map a failed write probe onto what it says about the relation."""

    if isinstance(exc, NotFoundError):
        return ProbeOutcome.RETRY
    if isinstance(exc, RowContentError):
        # rejected for content, so the write did reach the relation
        return ProbeOutcome.READY
    if isinstance(exc, StoreError):
        return ProbeOutcome.RETRY
    return ProbeOutcome.FATAL


def poll(
    attempt: Callable[[int], ProbeOutcome],
    *,
    max_attempts: int,
    delay_range: tuple[float, float],
    sleep: Sleep,
    rng: random.Random,
) -> bool:
    """Run ``attempt`` until it reports ``READY`` or the budget is spent.

    ``attempt`` receives the 1-based attempt number. A ``FATAL`` outcome stops
    polling and returns ``False``; callers that need to propagate the cause raise
    from inside ``attempt`` instead. No sleep follows the final attempt.
    """

    low, high = delay_range
    for number in range(1, max_attempts + 1):
        outcome = attempt(number)
        if outcome is ProbeOutcome.READY:
            return True
        if outcome is ProbeOutcome.FATAL:
            return False
        if number < max_attempts:
            sleep(rng.uniform(low, high))
    return False


class ConsistencyGuard:
    """Existence and writability waits for freshly created relations."""

    def __init__(
        self,
        backend: TableBackend,
        policy: ConsistencyPolicy | None = None,
        *,
        sleep: Sleep = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.backend = backend
        self.policy = policy or ConsistencyPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def await_existence(
        self,
        handle: TableHandle,
        *,
        max_attempts: int | None = None,
        delay_range: tuple[float, float] | None = None,
    ) -> bool:
        budget = self.policy.existence_attempts if max_attempts is None else max_attempts

        def check(number: int) -> ProbeOutcome:
            try:
                found = self.backend.exists(handle.name)
            except StoreError as exc:
                log.warning(
                    "Existence check on %s failed (attempt %s/%s): %s",
                    handle.name,
                    number,
                    budget,
                    exc,
                )
                return ProbeOutcome.RETRY
            if found:
                log.info("Relation %s confirmed to exist on attempt %s", handle.name, number)
                return ProbeOutcome.READY
            log.debug("Relation %s not visible yet (attempt %s/%s)", handle.name, number, budget)
            return ProbeOutcome.RETRY

        ready = poll(
            check,
            max_attempts=budget,
            delay_range=self.policy.delay_range if delay_range is None else delay_range,
            sleep=self._sleep,
            rng=self._rng,
        )
        if not ready:
            log.warning("Relation %s does not exist after %s attempts", handle.name, budget)
        return ready

    def await_writable(
        self,
        handle: TableHandle,
        *,
        max_attempts: int | None = None,
        delay_range: tuple[float, float] | None = None,
    ) -> bool:
        budget = self.policy.write_attempts if max_attempts is None else max_attempts

        def probe(number: int) -> ProbeOutcome:
            marker = uuid.uuid4().hex
            try:
                self.backend.insert_rows(handle, [{f"_probe_{marker}": marker}])
            except Exception as exc:
                outcome = classify_probe_error(exc)
                if outcome is ProbeOutcome.FATAL:
                    raise
                if outcome is ProbeOutcome.READY:
                    log.info("Relation %s is ready for writes", handle.name)
                elif isinstance(exc, NotFoundError):
                    log.debug(
                        "Relation %s not routable yet (attempt %s/%s)", handle.name, number, budget
                    )
                else:
                    log.warning(
                        "Unexpected probe failure on %s (attempt %s/%s): %s",
                        handle.name,
                        number,
                        budget,
                        exc,
                    )
                return outcome
            log.warning("Write probe on %s was accepted; treating relation as ready", handle.name)
            return ProbeOutcome.READY

        ready = poll(
            probe,
            max_attempts=budget,
            delay_range=self.policy.delay_range if delay_range is None else delay_range,
            sleep=self._sleep,
            rng=self._rng,
        )
        if not ready:
            log.warning("Relation %s not writable after %s attempts", handle.name, budget)
        return ready
