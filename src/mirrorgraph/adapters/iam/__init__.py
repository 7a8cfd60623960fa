"""Public interface for the access-policy adapter."""

from __future__ import annotations

from .client import AccessPolicyError, ResourceManagerAccessPolicy, default_grants
from .schema import Binding, Policy

__all__ = [
    "AccessPolicyError",
    "Binding",
    "Policy",
    "ResourceManagerAccessPolicy",
    "default_grants",
]
