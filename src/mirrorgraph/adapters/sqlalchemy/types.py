"""SQLAlchemy column types for relation schemas."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Dialect, Float, String, TypeDecorator
from sqlalchemy.types import TypeEngine

from mirrorgraph.domain.statements import Column as SchemaColumn
from mirrorgraph.domain.statements import ColumnType, parse_timestamp


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _dump(column: SchemaColumn, value: Any, *, element: bool = False) -> Any:
    if value is None:
        return None
    if column.repeated and not element:
        return [_dump(column, item, element=True) for item in value]
    if column.type is ColumnType.TIMESTAMP:
        return parse_timestamp(value).isoformat()
    if column.type is ColumnType.RECORD:
        return {sub.name: _dump(sub, value.get(sub.name)) for sub in column.fields}
    return value


def _load(column: SchemaColumn, value: Any, *, element: bool = False) -> Any:
    if value is None:
        return [] if column.repeated and not element else None
    if column.repeated and not element:
        return [_load(column, item, element=True) for item in value]
    if column.type is ColumnType.TIMESTAMP:
        return parse_timestamp(value)
    if column.type is ColumnType.RECORD:
        return {sub.name: _load(sub, value.get(sub.name)) for sub in column.fields}
    return value


class SchemaJSON(TypeDecorator[Any]):
    """JSON storage for repeated, record and free-form columns.

    Timestamps nested anywhere in the column are stored as ISO strings and come
    back as aware datetimes.
    """

    impl = JSON
    cache_ok = True

    def __init__(self, column: SchemaColumn) -> None:
        super().__init__()
        self.column = column

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        _ = dialect
        return _dump(self.column, value)

    def process_result_value(self, value: Any, dialect: Dialect) -> Any:
        _ = dialect
        return _load(self.column, value)


def column_type(column: SchemaColumn) -> TypeEngine[Any]:
    if column.repeated or column.type in {ColumnType.RECORD, ColumnType.JSON}:
        return SchemaJSON(column)
    if column.type is ColumnType.TIMESTAMP:
        return UTCDateTime()
    if column.type is ColumnType.FLOAT:
        return Float()
    if column.type is ColumnType.BOOL:
        return Boolean()
    return String()
