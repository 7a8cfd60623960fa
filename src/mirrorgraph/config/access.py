"""Access-policy (IAM) configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import any_env_set, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

RESOURCE_MANAGER_BASE_URL = "https://cloudresourcemanager.googleapis.com/v1/"
RESOURCE_MANAGER_TIMEOUT_SECONDS = 15.0

DATASET_READ_ROLE = "roles/bigquery.dataViewer"
JOB_RUN_ROLE = "roles/bigquery.jobUser"
SNAPSHOT_OWNER_ROLE = "roles/bigquery.dataOwner"

_REQUIRED_VARS = ("MIRRORGRAPH_GCP_PROJECT", "MIRRORGRAPH_PRINCIPAL", "MIRRORGRAPH_ACCESS_TOKEN")


@dataclass(frozen=True, slots=True)
class AccessConfig:
    """Who gets access, on which resources, and how to reach the policy API."""

    project_id: str
    principal: str
    access_token: str
    snapshot_resource: str
    resilience: ResilienceConfig

    @property
    def project_resource(self) -> str:
        return f"projects/{self.project_id}"


def _default_resilience() -> ResilienceConfig:
    return ResilienceConfig(
        name="resource-manager",
        base_url=RESOURCE_MANAGER_BASE_URL,
        timeout_seconds=RESOURCE_MANAGER_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
    )


def get_access_config(*, resilience: ResilienceConfig | None = None) -> AccessConfig | None:
    """Return the access configuration, or ``None`` when grants are not configured.

    Setting only some of the variables is a configuration error.
    """

    if not any_env_set(_REQUIRED_VARS):
        return None
    values = require_env_vars(_REQUIRED_VARS)
    project_id = values["MIRRORGRAPH_GCP_PROJECT"]
    return AccessConfig(
        project_id=project_id,
        principal=values["MIRRORGRAPH_PRINCIPAL"],
        access_token=values["MIRRORGRAPH_ACCESS_TOKEN"],
        snapshot_resource=os.getenv("MIRRORGRAPH_SNAPSHOT_RESOURCE") or f"projects/{project_id}",
        resilience=resilience or _default_resilience(),
    )
