from __future__ import annotations

import random
from typing import TYPE_CHECKING

import pytest

from mirrorgraph.adapters.memory import InMemoryTableBackend
from mirrorgraph.config import ConsistencyPolicy
from mirrorgraph.domain.consistency import ConsistencyGuard, ProbeOutcome, classify_probe_error, poll
from mirrorgraph.domain.errors import NotFoundError, RowContentError, StatementError, StoreError
from mirrorgraph.domain.statements import IDENTITY_CLUSTER_SCHEMA
from tests.helpers.identities import RecordingSleep

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mirrorgraph.domain.ports.backend import TableHandle
    from mirrorgraph.domain.statements import Row


class _AcceptingBackend(InMemoryTableBackend):
    def insert_rows(self, handle: TableHandle, rows: Sequence[Row]) -> None:
        _ = (handle, rows)


class _BrokenBackend(InMemoryTableBackend):
    def insert_rows(self, handle: TableHandle, rows: Sequence[Row]) -> None:
        raise TypeError("driver exploded")


class _FlakyLookupBackend(InMemoryTableBackend):
    def exists(self, name: str) -> bool:
        raise StoreError(f"lookup of {name} timed out")


def _guard(backend: InMemoryTableBackend, sleeps: RecordingSleep) -> ConsistencyGuard:
    return ConsistencyGuard(backend, ConsistencyPolicy(), sleep=sleeps, rng=random.Random(7))


def test_classify_probe_error() -> None:
    assert classify_probe_error(NotFoundError("t")) is ProbeOutcome.RETRY
    assert classify_probe_error(RowContentError("t", "bad field")) is ProbeOutcome.READY
    assert classify_probe_error(StatementError("busy")) is ProbeOutcome.RETRY
    assert classify_probe_error(StoreError("transient")) is ProbeOutcome.RETRY
    assert classify_probe_error(TypeError("boom")) is ProbeOutcome.FATAL


def test_poll_returns_true_once_ready() -> None:
    sleeps = RecordingSleep()
    outcomes = iter([ProbeOutcome.RETRY, ProbeOutcome.RETRY, ProbeOutcome.READY])
    seen: list[int] = []

    def attempt(number: int) -> ProbeOutcome:
        seen.append(number)
        return next(outcomes)

    ready = poll(attempt, max_attempts=5, delay_range=(1.0, 5.0), sleep=sleeps, rng=random.Random(1))

    assert ready is True
    assert seen == [1, 2, 3]
    assert len(sleeps.calls) == 2
    assert all(1.0 <= delay <= 5.0 for delay in sleeps.calls)


def test_poll_gives_up_without_sleeping_after_last_attempt() -> None:
    sleeps = RecordingSleep()

    ready = poll(
        lambda _: ProbeOutcome.RETRY,
        max_attempts=3,
        delay_range=(0.5, 0.5),
        sleep=sleeps,
        rng=random.Random(1),
    )

    assert ready is False
    assert sleeps.calls == [0.5, 0.5]


def test_poll_stops_on_fatal() -> None:
    sleeps = RecordingSleep()

    ready = poll(
        lambda _: ProbeOutcome.FATAL,
        max_attempts=10,
        delay_range=(1.0, 5.0),
        sleep=sleeps,
        rng=random.Random(1),
    )

    assert ready is False
    assert sleeps.calls == []


def test_await_existence_waits_out_creation_lag() -> None:
    backend = InMemoryTableBackend(existence_lag=2)
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)
    sleeps = RecordingSleep()

    assert _guard(backend, sleeps).await_existence(handle) is True
    assert len(sleeps.calls) == 2


def test_await_existence_reports_exhausted_budget() -> None:
    backend = InMemoryTableBackend(existence_lag=10)
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)
    sleeps = RecordingSleep()

    assert _guard(backend, sleeps).await_existence(handle, max_attempts=3) is False
    assert len(sleeps.calls) == 2


def test_await_writable_retries_until_routable() -> None:
    backend = InMemoryTableBackend(routing_lag=3)
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)
    sleeps = RecordingSleep()

    assert _guard(backend, sleeps).await_writable(handle) is True
    assert len(sleeps.calls) == 3
    assert backend.read_rows("identities_today") == []


def test_await_writable_treats_accepted_probe_as_ready(caplog: pytest.LogCaptureFixture) -> None:
    backend = _AcceptingBackend()
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)
    sleeps = RecordingSleep()

    assert _guard(backend, sleeps).await_writable(handle) is True
    assert "was accepted" in caplog.text


def test_await_writable_propagates_unexpected_errors() -> None:
    backend = _BrokenBackend()
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)

    with pytest.raises(TypeError, match="driver exploded"):
        _guard(backend, RecordingSleep()).await_writable(handle)


def test_await_existence_retries_store_errors(caplog: pytest.LogCaptureFixture) -> None:
    backend = _FlakyLookupBackend()
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)
    sleeps = RecordingSleep()

    assert _guard(backend, sleeps).await_existence(handle, max_attempts=4) is False
    assert len(sleeps.calls) == 3
    assert "timed out" in caplog.text


def test_explicit_zero_budget_is_honoured() -> None:
    backend = InMemoryTableBackend()
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)
    sleeps = RecordingSleep()
    guard = _guard(backend, sleeps)

    assert guard.await_existence(handle, max_attempts=0) is False
    assert guard.await_writable(handle, max_attempts=0) is False
    assert backend.exists("identities_today") is True
    assert sleeps.calls == []


def test_explicit_delay_range_overrides_policy() -> None:
    backend = InMemoryTableBackend(existence_lag=2)
    handle = backend.create("identities_today", IDENTITY_CLUSTER_SCHEMA)
    sleeps = RecordingSleep()

    assert _guard(backend, sleeps).await_existence(handle, delay_range=(0.0, 0.0)) is True
    assert sleeps.calls == [0.0, 0.0]
