from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ResourceRef(BaseModel):
    """A collection or environment: ``uid`` in remote mode, file ``name`` in local mode."""

    name: str | None = None
    uid: str | None = None

    def label(self) -> str:
        return str(self.name or self.uid or "<unnamed>")


class RunRequest(BaseModel):
    files: list[ResourceRef] = Field(default_factory=list)
    environment: ResourceRef | None = None
    parallel: bool = False


class ConfigUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(default="", alias="apiKey")
    workspace_id: str = Field(default="", alias="workspaceId")
    use_api: bool = Field(default=True, alias="useApi")
