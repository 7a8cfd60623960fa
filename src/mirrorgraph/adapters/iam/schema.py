"""Pydantic models for Cloud Resource Manager IAM policy payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IamBaseModel(BaseModel):
    # unknown fields (auditConfigs, ...) must survive a get/set round trip
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Binding(IamBaseModel):
    role: str
    members: list[str] = Field(default_factory=list)


class Policy(IamBaseModel):
    version: int | None = None
    etag: str | None = None
    bindings: list[Binding] = Field(default_factory=list)

    def has_member(self, role: str, member: str) -> bool:
        return any(binding.role == role and member in binding.members for binding in self.bindings)

    def with_member(self, role: str, member: str) -> Policy:
        """Return a copy granting ``role`` to ``member``."""

        bindings = [binding.model_copy(deep=True) for binding in self.bindings]
        for binding in bindings:
            if binding.role == role:
                if member not in binding.members:
                    binding.members.append(member)
                break
        else:
            bindings.append(Binding(role=role, members=[member]))
        return self.model_copy(update={"bindings": bindings})


class SetIamPolicyRequest(IamBaseModel):
    policy: Policy


class ErrorDetail(IamBaseModel):
    code: int
    message: str
    status: str | None = None


class ErrorResponse(IamBaseModel):
    error: ErrorDetail
