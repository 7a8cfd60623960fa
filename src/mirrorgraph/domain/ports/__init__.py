"""Domain port definitions for adapters."""

from __future__ import annotations

from .access import AccessGrant, AccessPolicy
from .backend import TableBackend, TableHandle

__all__ = [
    "AccessGrant",
    "AccessPolicy",
    "TableBackend",
    "TableHandle",
]
