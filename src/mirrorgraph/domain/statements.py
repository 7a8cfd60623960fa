"""Relation schemas and structured data-manipulation statements.

Statements are plain values: an operation kind plus typed operands. Backends
render them into whatever their store executes, so nothing here ever builds query
text.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

type Row = dict[str, Any]

_ISO_TIMESTAMP: Final = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
_BOOL_STRINGS: Final = {"true": True, "false": False}


class ColumnType(StrEnum):
    STRING = "STRING"
    TIMESTAMP = "TIMESTAMP"
    FLOAT = "FLOAT"
    BOOL = "BOOL"
    RECORD = "RECORD"
    JSON = "JSON"


class ColumnMode(StrEnum):
    NULLABLE = "NULLABLE"
    REPEATED = "REPEATED"


@dataclass(frozen=True, slots=True)
class Column:
    name: str
    type: ColumnType
    mode: ColumnMode = ColumnMode.NULLABLE
    fields: tuple[Column, ...] = ()

    @property
    def repeated(self) -> bool:
        return self.mode is ColumnMode.REPEATED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.type.value, "mode": self.mode.value}
        if self.fields:
            data["fields"] = [sub.to_dict() for sub in self.fields]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Column:
        return cls(
            name=str(data["name"]),
            type=ColumnType(data["type"]),
            mode=ColumnMode(data.get("mode", ColumnMode.NULLABLE)),
            fields=tuple(cls.from_dict(sub) for sub in data.get("fields", ())),
        )


@dataclass(frozen=True, slots=True)
class TableSchema:
    columns: tuple[Column, ...]

    @classmethod
    def of(cls, *columns: Column) -> TableSchema:
        return cls(columns=columns)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def to_list(self) -> list[dict[str, Any]]:
        return [column.to_dict() for column in self.columns]

    @classmethod
    def from_list(cls, data: Iterable[Mapping[str, Any]]) -> TableSchema:
        return cls(columns=tuple(Column.from_dict(item) for item in data))


IDENTITY_CLUSTER_SCHEMA: Final = TableSchema.of(
    Column("cluster_id", ColumnType.STRING),
    Column("as_of", ColumnType.TIMESTAMP),
    Column(
        "identities",
        ColumnType.RECORD,
        ColumnMode.REPEATED,
        fields=(
            Column("identity", ColumnType.STRING),
            Column("type", ColumnType.STRING),
            Column("first_seen", ColumnType.TIMESTAMP),
        ),
    ),
)

PERMUTATION_SCHEMA: Final = TableSchema.of(
    Column("cluster_id", ColumnType.STRING),
    Column("ids", ColumnType.STRING, ColumnMode.REPEATED),
    Column("on_behalf_of", ColumnType.STRING),
    Column("payload", ColumnType.JSON),
)


# Inference and coercion -------------------------------------------------------


def infer_column_type(value: object) -> ColumnType:
    if isinstance(value, datetime):
        return ColumnType.TIMESTAMP
    if isinstance(value, str):
        return ColumnType.TIMESTAMP if _ISO_TIMESTAMP.search(value) else ColumnType.STRING
    if isinstance(value, bool):
        return ColumnType.BOOL
    if isinstance(value, int | float):
        return ColumnType.FLOAT
    return ColumnType.STRING


def infer_schema(record: Mapping[str, object]) -> TableSchema:
    """Derive a flat schema from the field names and values of one record."""

    return TableSchema(
        columns=tuple(Column(name, infer_column_type(value)) for name, value in record.items())
    )


def parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    else:
        raise TypeError(f"Expected a timestamp, got {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _coerce_scalar(column: Column, value: object) -> object:
    if value is None:
        return None
    column_type = column.type
    if column_type is ColumnType.TIMESTAMP:
        return parse_timestamp(value)
    if column_type is ColumnType.FLOAT:
        if isinstance(value, bool) or not isinstance(value, int | float | str):
            raise TypeError(f"Column {column.name!r} expects a number")
        number = float(value)
        if math.isnan(number):
            return None
        return number
    if column_type is ColumnType.BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _BOOL_STRINGS:
            return _BOOL_STRINGS[value.strip().lower()]
        raise TypeError(f"Column {column.name!r} expects a boolean")
    if column_type is ColumnType.RECORD:
        if not isinstance(value, dict):
            raise TypeError(f"Column {column.name!r} expects a record")
        return coerce_row(TableSchema(columns=column.fields), value)
    if column_type is ColumnType.JSON:
        return value
    return str(value)


def coerce_value(column: Column, value: object) -> object:
    if column.repeated:
        if value is None:
            return []
        if not isinstance(value, list | tuple):
            raise TypeError(f"Column {column.name!r} expects a list")
        return [_coerce_scalar(column, item) for item in value]
    return _coerce_scalar(column, value)


def coerce_row(schema: TableSchema, row: Mapping[str, Any]) -> Row:
    """Convert ``row`` to the column types of ``schema``.

    Missing columns become ``None`` (or ``[]`` when repeated). Keys the schema does
    not know are passed through untouched so the backend can reject them.
    """

    coerced: Row = {}
    for column in schema.columns:
        coerced[column.name] = coerce_value(column, row.get(column.name))
    for key, value in row.items():
        if schema.column(key) is None:
            coerced[key] = value
    return coerced


# Statements ---------------------------------------------------------------------


class StatementKind(StrEnum):
    INSERT_ROW = "insert_row"
    DELETE_ALL = "delete_all"
    COPY_ALL = "copy_all"
    DERIVE_PERMUTATIONS = "derive_permutations"


@dataclass(frozen=True, slots=True)
class InsertRow:
    target: str
    row: Row = field(hash=False)
    kind: StatementKind = field(default=StatementKind.INSERT_ROW, init=False)


@dataclass(frozen=True, slots=True)
class DeleteAll:
    target: str
    kind: StatementKind = field(default=StatementKind.DELETE_ALL, init=False)


@dataclass(frozen=True, slots=True)
class CopyAll:
    source: str
    target: str
    kind: StatementKind = field(default=StatementKind.COPY_ALL, init=False)


@dataclass(frozen=True, slots=True)
class DerivePermutations:
    """Create-or-replace ``target`` as the adjacent-pair chain of ``source``."""

    source: str
    target: str
    kind: StatementKind = field(default=StatementKind.DERIVE_PERMUTATIONS, init=False)


type Statement = InsertRow | DeleteAll | CopyAll | DerivePermutations


class JobState(StrEnum):
    DONE = "done"
    RUNNING = "running"
    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class Job:
    """Completion report for one executed statement."""

    job_id: str
    kind: StatementKind
    state: JobState = JobState.DONE
    error: str | None = None
    affected_rows: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state is JobState.DONE and self.error is None
