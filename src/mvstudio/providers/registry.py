"""Runtime registry of provider adapter instances."""

from __future__ import annotations

import logging

import httpx

from mvstudio.config import Settings
from mvstudio.errors.exceptions import InvalidInputError
from mvstudio.models.enums import JobDomain
from mvstudio.providers.adapters import AVAILABLE_ADAPTERS, import_adapter
from mvstudio.providers.adapters.base import ProviderAdapter
from mvstudio.providers.config import endpoints_from_settings

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Maps provider names to adapters; the orchestrator's only view of vendors."""

    def __init__(self, adapters: dict[str, ProviderAdapter] | None = None):
        self._adapters: dict[str, ProviderAdapter] = dict(adapters or {})

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ProviderRegistry":
        endpoints = endpoints_from_settings(settings)
        registry = cls()
        for name, dotted_path in AVAILABLE_ADAPTERS.items():
            endpoint = endpoints.get(name)
            if endpoint is None:
                logger.warning("No endpoint configured for provider %s; skipping", name)
                continue
            adapter_cls = import_adapter(dotted_path)
            registry.register(adapter_cls(endpoint, transport=transport))
        logger.info("Provider registry ready: %s", ", ".join(registry.providers()))
        return registry

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.provider] = adapter

    def providers(self) -> list[str]:
        return sorted(self._adapters)

    def get(self, provider: str) -> ProviderAdapter:
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise InvalidInputError(
                f"Unsupported provider '{provider}'",
                {"supported": self.providers()},
            )
        return adapter

    def resolve(self, provider: str, domain: JobDomain) -> ProviderAdapter:
        """Return the adapter for ``provider`` after checking it serves ``domain``."""
        adapter = self.get(provider)
        if adapter.domain != domain:
            raise InvalidInputError(
                f"Provider '{provider}' does not handle {domain} jobs",
                {"provider": provider, "domain": str(domain)},
            )
        return adapter
