"""Bounded, retrying HTTP access to provider APIs.

Each attempt, body included, must finish within the endpoint's timeout. Reads
(``idempotent=True``) retry on timeouts, transport errors, 408, 425, 429 and
5xx. Submissions retry only when the connection was never established, so a
vendor never sees one logical request twice.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mvstudio.errors.exceptions import ProviderAuthError, ProviderUnavailableError
from mvstudio.providers.config import ProviderEndpoint

logger = logging.getLogger(__name__)

# 408 and 425 mean "try again later", not "this job failed"
_RETRYABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})
_AUTH_STATUS = frozenset({401, 403})


class _RetryableStatus(Exception):
    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


class ProviderHttpClient:
    """Thin httpx wrapper bound to one provider endpoint."""

    def __init__(self, endpoint: ProviderEndpoint, transport: httpx.AsyncBaseTransport | None = None):
        self.endpoint = endpoint
        self._transport = transport

    @property
    def provider(self) -> str:
        return self.endpoint.provider

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.endpoint.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        idempotent: bool = True,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and return the response.

        4xx responses other than 401/403 are returned to the caller so adapters
        can map them to business-level failures.

        Raises:
            ProviderAuthError: HTTP 401/403.
            ProviderUnavailableError: timeout, transport failure, or a
                retryable status that outlived every attempt.
        """
        url = self.url(path)
        merged_headers = {**self.endpoint.extra_headers, **(headers or {})}
        if idempotent:
            retry_on = (httpx.TransportError, _RetryableStatus)
        else:
            retry_on = (httpx.ConnectError, httpx.ConnectTimeout)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.endpoint.max_attempts),
            wait=wait_exponential(multiplier=self.endpoint.retry_backoff_seconds, max=8.0),
            retry=retry_if_exception_type(retry_on),
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._send(method, url, timeout, merged_headers, **kwargs)
                    if idempotent and response.status_code in _RETRYABLE_STATUS:
                        raise _RetryableStatus(response)
        except _RetryableStatus as exc:
            response = exc.response
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(
                self.provider, f"{self.provider} request timed out", {"method": method, "url": url}
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                self.provider, f"{self.provider} transport error: {exc}", {"method": method, "url": url}
            ) from exc

        if response.status_code in _AUTH_STATUS:
            raise ProviderAuthError(
                self.provider,
                f"{self.provider} rejected credentials (HTTP {response.status_code})",
                {"status_code": response.status_code},
            )
        if response.status_code in _RETRYABLE_STATUS:
            raise ProviderUnavailableError(
                self.provider,
                f"{self.provider} returned HTTP {response.status_code}",
                {"status_code": response.status_code},
            )
        return response

    async def _send(
        self,
        method: str,
        url: str,
        timeout: float | None,
        headers: dict[str, str],
        **kwargs: Any,
    ) -> httpx.Response:
        deadline = timeout or self.endpoint.timeout_seconds
        # httpx limits each connect/read step; the whole exchange gets one deadline
        try:
            async with asyncio.timeout(deadline):
                async with httpx.AsyncClient(
                    timeout=deadline,
                    transport=self._transport,
                    follow_redirects=True,
                ) as client:
                    return await client.request(method, url, headers=headers, **kwargs)
        except TimeoutError as exc:
            raise httpx.TimeoutException(f"no complete response within {deadline}s") from exc

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retrying %s request (attempt %d/%d): %s",
            self.provider,
            retry_state.attempt_number,
            self.endpoint.max_attempts,
            exc,
        )


def json_body(response: httpx.Response, provider: str) -> dict:
    """Decode a JSON object body; anything else is a protocol failure."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderUnavailableError(provider, f"Non-JSON response from {provider}") from exc
    if not isinstance(payload, dict):
        raise ProviderUnavailableError(provider, f"Unexpected JSON type from {provider}: {type(payload).__name__}")
    return payload


def error_message(payload: dict, default: str) -> str:
    """Best-effort human-readable message from a vendor error body."""
    err = payload.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or err.get("code") or default)
    return str(err or payload.get("error_message") or payload.get("message") or default)


def safe_json(response: httpx.Response) -> dict:
    """Decode an error body if it is a JSON object, else an empty dict."""
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
