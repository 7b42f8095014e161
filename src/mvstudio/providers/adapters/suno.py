"""Suno music adapter (GoAPI-hosted Suno endpoints)."""

from __future__ import annotations

import logging

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


class SunoAdapter(ProviderAdapter):
    """Generates songs through Suno.

    Expected endpoint configuration:
        base_url:  e.g. ``https://api.goapi.ai/suno``
        api_key:   sent as ``X-API-Key``
    """

    provider: str = "suno"
    domain = JobDomain.MUSIC

    def _headers(self) -> dict[str, str]:
        return {"X-API-Key": self.endpoint.require_api_key()}

    async def submit(self, request: SubmitRequest) -> SubmitResult:
        params = request.params
        tags = ", ".join(t for t in (params.get("genre"), params.get("mood")) if t)
        body = compact({
            "prompt": params["prompt"],
            "make_instrumental": bool(params.get("instrumental", False)),
            "custom_mode": bool(params.get("custom_lyrics")),
            "lyrics": params.get("custom_lyrics"),
            "tags": tags or None,
            "wait_audio": False,
        })
        headers = {**self._headers(), "Idempotency-Key": request.job_id}
        resp = await self.http.request("POST", "/v1/music/generate", idempotent=False, headers=headers, json=body)

        if resp.status_code >= 400:
            message = error_message(safe_json(resp), f"Suno rejected the request (HTTP {resp.status_code})")
            logger.info("Suno rejected job %s: %s", request.job_id, message)
            return SubmitResult.rejected(message)

        payload = json_body(resp, self.provider)
        external_id = payload.get("id")
        if not external_id:
            return SubmitResult.rejected("Suno response did not include a generation id")
        return SubmitResult(external_id=str(external_id), status=JobStatus.PROCESSING)

    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        resp = await self.http.request("GET", f"/v1/music/{external_id}", headers=self._headers())

        if resp.status_code == 404:
            return PollResult.failed(f"Suno has no generation '{external_id}'", code="PROVIDER_NOT_FOUND")
        if resp.status_code >= 400:
            return PollResult.failed(
                error_message(safe_json(resp), f"Suno status check failed (HTTP {resp.status_code})")
            )

        payload = json_body(resp, self.provider)
        # Suno reports "complete" / "error"; every other value is still running
        status = str(payload.get("status") or "").lower()
        if status == "complete":
            return PollResult(
                status=JobStatus.COMPLETED,
                result_payload=compact({
                    "audio_url": payload.get("audio_url"),
                    "video_url": payload.get("video_url"),
                    "title": payload.get("title"),
                    "tags": payload.get("tags"),
                    "duration": payload.get("duration"),
                }),
            )
        if status == "error":
            return PollResult.failed(str(payload.get("error_message") or "Suno generation failed"))
        return PollResult.processing()
