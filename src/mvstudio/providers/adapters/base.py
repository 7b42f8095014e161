"""Abstract base class for provider adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from mvstudio.errors.exceptions import ProviderAuthError
from mvstudio.models.enums import JobDomain
from mvstudio.providers.config import ProviderEndpoint
from mvstudio.providers.http import ProviderHttpClient
from mvstudio.providers.normalized import PollResult, SubmitRequest, SubmitResult, UserCredentials


class ProviderAdapter(ABC):
    """Translates the uniform submit/poll contract into one vendor's API.

    Adapters raise only ``ProviderUnavailableError`` (transport, timeout) and
    ``ProviderAuthError`` (credentials). Anything the vendor reports as a
    business failure comes back as a ``failed`` result.
    """

    provider: str = "unknown"
    domain: JobDomain
    requires_user_credentials: bool = False

    def __init__(self, endpoint: ProviderEndpoint, transport: httpx.AsyncBaseTransport | None = None):
        self.endpoint = endpoint
        self.http = ProviderHttpClient(endpoint, transport=transport)

    @abstractmethod
    async def submit(self, request: SubmitRequest) -> SubmitResult:
        """Submit one job to the vendor.

        Returns:
            The vendor's job id and its initial normalized status.
        """
        ...

    @abstractmethod
    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        """Read the vendor's current status for a previously submitted job."""
        ...

    def _require_credentials(self, credentials: UserCredentials | None) -> UserCredentials:
        if credentials is None or not credentials.access_token:
            raise ProviderAuthError(self.provider, f"No {self.provider} access token available")
        return credentials
