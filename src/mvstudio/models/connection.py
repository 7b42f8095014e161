"""Pydantic models for stored publish-platform connections."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from mvstudio.models.enums import PublishPlatform


class ConnectionUpsert(BaseModel):
    model_config = ConfigDict(extra="forbid")

    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = None
    expires_at: datetime | None = None
    scope: str | None = Field(None, max_length=500)
    account_id: str | None = Field(None, max_length=128)


class ConnectionOut(BaseModel):
    """A connection as returned by the API; tokens are never echoed back."""

    model_config = ConfigDict(from_attributes=True)

    connection_id: str
    platform: PublishPlatform
    scope: str | None = None
    account_id: str | None = None
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
