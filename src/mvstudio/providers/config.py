"""Explicit per-provider endpoint configuration.

Endpoints are built once from ``Settings`` at startup and handed to each
adapter; adapters never read global settings themselves.
"""

from pydantic import BaseModel, ConfigDict, Field

from mvstudio.config import Settings
from mvstudio.errors.exceptions import ProviderAuthError


class ProviderEndpoint(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    provider: str
    base_url: str
    api_key: str | None = None
    timeout_seconds: float = Field(30.0, gt=0)
    max_attempts: int = Field(3, ge=1)
    retry_backoff_seconds: float = Field(0.5, ge=0)
    extra_headers: dict[str, str] = Field(default_factory=dict)

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ProviderAuthError(self.provider, f"{self.provider} API key not configured")
        return self.api_key


def endpoints_from_settings(settings: Settings) -> dict[str, ProviderEndpoint]:
    """Build the endpoint for every supported provider."""
    common = {
        "timeout_seconds": settings.provider_timeout_seconds,
        "max_attempts": settings.provider_max_attempts,
        "retry_backoff_seconds": settings.provider_retry_backoff_seconds,
    }
    endpoints = [
        ProviderEndpoint(provider="suno", base_url=settings.suno_base_url, api_key=settings.suno_api_key, **common),
        ProviderEndpoint(provider="musicgpt", base_url=settings.musicgpt_base_url, api_key=settings.musicgpt_api_key, **common),
        ProviderEndpoint(provider="kling", base_url=settings.kling_base_url, api_key=settings.kling_api_key, **common),
        ProviderEndpoint(
            provider="runway",
            base_url=settings.runway_base_url,
            api_key=settings.runway_api_key,
            extra_headers={"X-Runway-Version": settings.runway_api_version},
            **common,
        ),
        ProviderEndpoint(
            provider="youtube",
            base_url=settings.youtube_base_url,
            **{**common, "timeout_seconds": settings.youtube_upload_timeout_seconds},
        ),
        ProviderEndpoint(provider="tiktok", base_url=settings.tiktok_base_url, **common),
        ProviderEndpoint(provider="facebook", base_url=settings.facebook_base_url, **common),
    ]
    return {e.provider: e for e in endpoints}
