"""Access grants through the Cloud Resource Manager IAM policy endpoints."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from mirrorgraph.adapters.http_resilience import ResilientClient
from mirrorgraph.config.access import DATASET_READ_ROLE, JOB_RUN_ROLE, SNAPSHOT_OWNER_ROLE
from mirrorgraph.domain.ports.access import AccessGrant

from .schema import ErrorResponse, Policy, SetIamPolicyRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from mirrorgraph.config.access import AccessConfig
    from mirrorgraph.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class AccessPolicyError(RuntimeError):
    """Raised when the policy API rejects a request or returns an unreadable payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def default_grants(config: AccessConfig) -> list[AccessGrant]:
    member = config.principal
    return [
        AccessGrant(resource=config.project_resource, role=DATASET_READ_ROLE, member=member),
        AccessGrant(resource=config.project_resource, role=JOB_RUN_ROLE, member=member),
        AccessGrant(resource=config.snapshot_resource, role=SNAPSHOT_OWNER_ROLE, member=member),
    ]


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class ResourceManagerAccessPolicy:
    """Idempotently grants the configured principal its roles.

    Each resource's policy is read once; ``setIamPolicy`` is only called when at
    least one binding is missing, carrying the etag that was read.
    """

    config: AccessConfig
    grants: list[AccessGrant] = field(default_factory=list[AccessGrant])
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def __post_init__(self) -> None:
        if not self.grants:
            self.grants = default_grants(self.config)

    def ensure_grants(self) -> list[AccessGrant]:
        return asyncio.run(self._ensure_grants_async())

    async def _ensure_grants_async(self) -> list[AccessGrant]:
        by_resource: dict[str, list[AccessGrant]] = defaultdict(list)
        for grant in self.grants:
            by_resource[grant.resource].append(grant)

        applied: list[AccessGrant] = []
        async with self.client_factory(self._resilience()) as client:
            for resource, grants in by_resource.items():
                policy = await self._get_policy(client, resource)
                missing = [g for g in grants if not policy.has_member(g.role, g.member)]
                if not missing:
                    log.info("Grants on %s already in place", resource)
                    continue
                updated = policy
                for grant in missing:
                    updated = updated.with_member(grant.role, grant.member)
                await self._set_policy(client, resource, updated)
                for grant in missing:
                    log.info("Granted %s to %s on %s", grant.role, grant.member, resource)
                applied.extend(missing)
        return applied

    def _resilience(self) -> ResilienceConfig:
        headers = dict(self.config.resilience.default_headers or {})
        headers["Authorization"] = f"Bearer {self.config.access_token}"
        return replace(self.config.resilience, default_headers=headers)

    async def _get_policy(self, client: ResilientClient, resource: str) -> Policy:
        response = await client.post(
            f"{resource}:getIamPolicy",
            json={"options": {"requestedPolicyVersion": 3}},
        )
        return Policy.model_validate(self._payload(response, resource))

    async def _set_policy(self, client: ResilientClient, resource: str, policy: Policy) -> None:
        body = SetIamPolicyRequest(policy=policy).model_dump(by_alias=True, exclude_none=True)
        response = await client.post(f"{resource}:setIamPolicy", json=body)
        self._payload(response, resource)

    @staticmethod
    def _payload(response: httpx.Response, resource: str) -> object:
        try:
            payload = response.json()
        except ValueError as exc:
            raise AccessPolicyError(
                f"Unreadable policy response for {resource}", status_code=response.status_code
            ) from exc
        if response.is_error:
            try:
                message = ErrorResponse.model_validate(payload).error.message
            except ValidationError:
                message = response.text
            raise AccessPolicyError(
                f"Policy request for {resource} failed: {message}",
                status_code=response.status_code,
            )
        return payload
