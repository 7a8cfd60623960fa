"""Port for the access-policy collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class AccessGrant:
    resource: str
    role: str
    member: str


@runtime_checkable
class AccessPolicy(Protocol):
    """Grants roles to a principal; calling it again when already granted is a no-op."""

    def ensure_grants(self) -> list[AccessGrant]: ...
