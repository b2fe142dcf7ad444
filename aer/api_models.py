from __future__ import annotations

from pydantic import BaseModel, Field

from .models import EnvEntry


class EnvVarModel(BaseModel):
    name: str = Field(..., min_length=1, description="Environment variable name")
    value: str = Field("", description="Environment variable value")

    def to_entry(self) -> EnvEntry:
        return EnvEntry(name=self.name, value=self.value)


class OverridesDocument(BaseModel):
    env: list[EnvVarModel] = Field(default_factory=list)


class ReconcileRequest(BaseModel):
    overrides: list[EnvVarModel] | None = Field(
        None, description="Ordered overrides; repeated names allowed, last wins. Omit to use the configured file."
    )
    name: str | None = Field(None, description="Workload name (defaults to AER_WORKLOAD_NAME)")
    namespace: str | None = Field(None, description="Workload namespace (defaults to AER_NAMESPACE)")
    container: str | None = Field(None, description="Target container (defaults to AER_CONTAINER_NAME)")
    skip_unchanged: bool | None = Field(None, description="Skip the write when nothing changed")


class ReconcileResponse(BaseModel):
    workload: str
    container: str
    wrote: bool
    env: list[EnvVarModel]
