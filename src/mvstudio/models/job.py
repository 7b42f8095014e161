"""Pydantic models for job submission requests and the Job resource."""

from datetime import datetime
from typing import Any, ClassVar, Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

from mvstudio.models.common import ErrorInfo
from mvstudio.models.enums import (
    JobDomain,
    JobStatus,
    MusicProvider,
    PrivacyStatus,
    PublishPlatform,
    VideoProvider,
)


class JobRequest(BaseModel):
    """Base for domain submission requests.

    Subclasses name the provider field; everything else becomes the job's
    immutable ``input_params`` snapshot.
    """

    model_config = ConfigDict(extra="forbid")

    domain: ClassVar[JobDomain]
    provider_field: ClassVar[str] = "provider"

    @property
    def provider_name(self) -> str:
        return str(getattr(self, self.provider_field))

    def input_params(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={self.provider_field}, exclude_none=True)


class MusicJobRequest(JobRequest):
    domain: ClassVar[JobDomain] = JobDomain.MUSIC

    provider: MusicProvider
    prompt: str = Field(..., min_length=10, max_length=3000)
    genre: str | None = Field(None, max_length=100)
    mood: str | None = Field(None, max_length=100)
    duration: int | None = Field(None, ge=5, le=600)
    instrumental: bool = False
    custom_lyrics: str | None = Field(None, max_length=5000)
    need_stems: bool = False


class VideoJobRequest(JobRequest):
    domain: ClassVar[JobDomain] = JobDomain.VIDEO

    provider: VideoProvider
    prompt: str = Field(..., min_length=1, max_length=2000)
    music_url: AnyHttpUrl | None = None
    style: str | None = Field(None, max_length=100)
    resolution: Literal["1080p", "4k"] = "1080p"
    aspect_ratio: Literal["16:9", "9:16", "1:1"] = "16:9"
    duration: Literal[5, 10] = 5


class PublicationJobRequest(JobRequest):
    domain: ClassVar[JobDomain] = JobDomain.PUBLICATION
    provider_field: ClassVar[str] = "platform"

    platform: PublishPlatform
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=5000)
    video_url: AnyHttpUrl
    tags: list[str] = Field(default_factory=list, max_length=30)
    privacy_status: PrivacyStatus = PrivacyStatus.PUBLIC
    page_id: str | None = Field(None, max_length=128)


class JobOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: str
    project_id: str
    domain: JobDomain
    provider: str
    status: JobStatus
    input_params: dict[str, Any]
    external_id: str | None = None
    result_payload: dict[str, Any] | None = None
    error_info: ErrorInfo | None = None
    cost_cents: int
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class StemsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    audio_url: AnyHttpUrl


class StemsOut(BaseModel):
    vocals_url: str
    instrumental_url: str
