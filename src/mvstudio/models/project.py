"""Pydantic models for the Project resource."""

from datetime import datetime

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

from mvstudio.models.enums import ProjectStatus


class ProjectCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)


class ProjectUpdate(BaseModel):
    """Partial update; only fields present in the body are applied."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    status: ProjectStatus | None = None
    music_url: AnyHttpUrl | None = None
    video_url: AnyHttpUrl | None = None
    thumbnail_url: AnyHttpUrl | None = None
    duration: int | None = Field(None, ge=0)


class Project(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: str
    owner_id: str
    title: str
    description: str | None = None
    status: ProjectStatus
    music_url: str | None = None
    video_url: str | None = None
    thumbnail_url: str | None = None
    duration: int | None = None
    created_at: datetime
    updated_at: datetime
