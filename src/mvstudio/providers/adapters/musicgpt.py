"""MusicGPT music adapter, plus its synchronous stem-separation call."""

from __future__ import annotations

import logging

from mvstudio.errors.exceptions import InvalidInputError, ProviderUnavailableError
from mvstudio.models.enums import JobDomain, JobStatus
from mvstudio.providers.adapters.base import ProviderAdapter
from mvstudio.providers.http import error_message, json_body, safe_json
from mvstudio.providers.normalized import (
    PollResult,
    SubmitRequest,
    SubmitResult,
    UserCredentials,
    compact,
)

logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 120


class MusicGPTAdapter(ProviderAdapter):
    """Generates songs through MusicGPT (two takes per request, optional stems)."""

    provider: str = "musicgpt"
    domain = JobDomain.MUSIC

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.endpoint.require_api_key()}"}

    async def submit(self, request: SubmitRequest) -> SubmitResult:
        params = request.params
        body = compact({
            "prompt": params["prompt"],
            "genre": params.get("genre"),
            "mood": params.get("mood"),
            "duration": params.get("duration") or DEFAULT_DURATION_SECONDS,
            "instrumental": bool(params.get("instrumental", False)),
            "generate_stems": bool(params.get("need_stems", False)),
        })
        headers = {**self._headers(), "Idempotency-Key": request.job_id}
        resp = await self.http.request("POST", "/v1/generate", idempotent=False, headers=headers, json=body)

        if resp.status_code >= 400:
            message = error_message(safe_json(resp), f"MusicGPT rejected the request (HTTP {resp.status_code})")
            logger.info("MusicGPT rejected job %s: %s", request.job_id, message)
            return SubmitResult.rejected(message)

        payload = json_body(resp, self.provider)
        external_id = payload.get("id")
        if not external_id:
            return SubmitResult.rejected("MusicGPT response did not include a generation id")
        return SubmitResult(external_id=str(external_id), status=JobStatus.PROCESSING)

    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        resp = await self.http.request("GET", f"/v1/status/{external_id}", headers=self._headers())

        if resp.status_code == 404:
            return PollResult.failed(f"MusicGPT has no generation '{external_id}'", code="PROVIDER_NOT_FOUND")
        if resp.status_code >= 400:
            return PollResult.failed(
                error_message(safe_json(resp), f"MusicGPT status check failed (HTTP {resp.status_code})")
            )

        payload = json_body(resp, self.provider)
        status = str(payload.get("status") or "").lower()
        if status == "completed":
            audio_urls = payload.get("audio_urls") or []
            return PollResult(
                status=JobStatus.COMPLETED,
                result_payload=compact({
                    "audio_url": audio_urls[0] if audio_urls else None,
                    "audio_urls": audio_urls,
                    "stems_url": payload.get("stems_url"),
                    "duration": payload.get("duration"),
                }),
            )
        if status == "failed":
            return PollResult.failed(str(payload.get("error_message") or "MusicGPT generation failed"))
        return PollResult.processing()

    async def separate_stems(self, audio_url: str) -> dict[str, str]:
        """Split a finished track into vocals and instrumental.

        Returns:
            ``{"vocals_url": ..., "instrumental_url": ...}``

        Raises:
            InvalidInputError: MusicGPT refused the audio.
            ProviderUnavailableError: MusicGPT returned no usable stems.
        """
        resp = await self.http.request(
            "POST",
            "/v1/stems/separate",
            idempotent=False,
            headers=self._headers(),
            json={"audio_url": audio_url},
        )
        if resp.status_code >= 400:
            raise InvalidInputError(
                error_message(safe_json(resp), f"MusicGPT could not separate stems (HTTP {resp.status_code})"),
                {"provider": self.provider},
            )

        payload = json_body(resp, self.provider)
        vocals_url = payload.get("vocals_url")
        instrumental_url = payload.get("instrumental_url")
        if not vocals_url or not instrumental_url:
            raise ProviderUnavailableError(self.provider, "MusicGPT stem response was incomplete")
        return {"vocals_url": vocals_url, "instrumental_url": instrumental_url}
