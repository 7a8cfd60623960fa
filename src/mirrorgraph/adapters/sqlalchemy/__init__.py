"""SQLAlchemy adapter package for mirrorgraph."""

from __future__ import annotations

from .backend import (
    CATALOG_TABLE_NAME,
    SqlAlchemyTableBackend,
    build_table,
    catalog_table,
    create_sql_backend,
)
from .types import SchemaJSON, UTCDateTime, column_type

__all__ = [
    "CATALOG_TABLE_NAME",
    "SchemaJSON",
    "SqlAlchemyTableBackend",
    "UTCDateTime",
    "build_table",
    "catalog_table",
    "column_type",
    "create_sql_backend",
]
