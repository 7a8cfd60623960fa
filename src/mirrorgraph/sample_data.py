"""Sample raw event streams and the four-stage identity graph built from them.

Day one only knows the anonymous visitor ``foo``. Each following day merges one
more identity into the same cluster: ``bar`` logs in on the website, ``baz`` is
the ERP/server account and ``qux`` appears in the CRM.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Final

from mirrorgraph.domain.model import ClusterSnapshot, DayKey, Identity, IdentityType
from mirrorgraph.domain.statements import parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from mirrorgraph.domain.statements import Row

CLUSTER_ID: Final[str] = "something_unique_123"
IDENTITY_FIELDS: Final[tuple[str, ...]] = tuple(item.value for item in IdentityType)


def default_start_time() -> datetime:
    return datetime.now(UTC).replace(microsecond=0) - timedelta(days=7)


def _iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def generate_event_tables(start: datetime) -> dict[str, list[Row]]:
    """Raw event rows per source relation, timestamps as ISO-8601 strings."""

    def at(**offset: float) -> str:
        return _iso(start - timedelta(**offset))

    return {
        # anon_id before authentication, user_id after
        "website_data": [
            {"event": "page view", "anon_id": "foo", "user_id": None, "timestamp": at(minutes=10)},
            {"event": "scroll", "anon_id": "foo", "timestamp": at(minutes=9)},
            {"event": "click", "anon_id": "foo", "timestamp": at(minutes=8)},
            {"event": "dropdown", "anon_id": "foo", "timestamp": at(minutes=7)},
            {"event": "log in", "user_id": "bar", "timestamp": at(minutes=7)},
            {"event": "doing stuff", "user_id": "bar", "timestamp": at(minutes=6)},
            {"event": "doing more stuff", "user_id": "bar", "timestamp": at(minutes=5)},
            {"event": "doing even more stuff", "user_id": "bar", "timestamp": at(minutes=4)},
        ],
        "erp_data": [
            {"event": "account provisioned", "master_user_id": "baz", "timestamp": at(minutes=3)},
            {"event": "account alive", "master_user_id": "baz", "timestamp": at(minutes=2)},
        ],
        "server_logs": [
            {"event": "server started", "master_user_id": "baz", "timestamp": at(minutes=1)},
            {"event": "server stopped", "master_user_id": "baz", "timestamp": at(seconds=30)},
        ],
        "crm_data": [
            {"event": "ticket opened", "crm_user_id": "qux", "priority": 2, "timestamp": at(seconds=15)},
            {"event": "ticket closed", "crm_user_id": "qux", "priority": 2, "timestamp": at(seconds=5)},
        ],
    }


def first_seen_by_identity(
    event_tables: Mapping[str, Sequence[Mapping[str, object]]],
) -> dict[tuple[str, str], datetime]:
    """Earliest event timestamp of every ``(identity, type)`` found in the raw rows."""

    first_seen: dict[tuple[str, str], datetime] = {}
    for rows in event_tables.values():
        for row in rows:
            timestamp = parse_timestamp(row["timestamp"])
            for field_name in IDENTITY_FIELDS:
                value = row.get(field_name)
                if not isinstance(value, str):
                    continue
                key = (value, field_name)
                if key not in first_seen or timestamp < first_seen[key]:
                    first_seen[key] = timestamp
    return first_seen


def generate_identity_graphs(start: datetime) -> dict[DayKey, list[ClusterSnapshot]]:
    first_seen = first_seen_by_identity(generate_event_tables(start))

    def identity(name: str, kind: IdentityType) -> Identity:
        return Identity(identity=name, type=kind.value, first_seen=first_seen[(name, kind.value)])

    foo = identity("foo", IdentityType.ANON_ID)
    bar = identity("bar", IdentityType.USER_ID)
    baz = identity("baz", IdentityType.MASTER_USER_ID)
    qux = identity("qux", IdentityType.CRM_USER_ID)

    stages: list[tuple[DayKey, datetime, tuple[Identity, ...]]] = [
        (DayKey.YESTERDAY, start - timedelta(minutes=8), (foo,)),
        (DayKey.TODAY, start - timedelta(minutes=5), (foo, bar)),
        (DayKey.TOMORROW, start + timedelta(days=1), (foo, bar, baz)),
        (DayKey.DAY_AFTER_TOMORROW, start + timedelta(days=2), (foo, bar, baz, qux)),
    ]
    return {
        day: [ClusterSnapshot.of(CLUSTER_ID, as_of, members)] for day, as_of, members in stages
    }
