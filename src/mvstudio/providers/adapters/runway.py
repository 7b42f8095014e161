"""Runway text-to-video adapter."""

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

DEFAULT_MODEL = "gen3a_turbo"

# Runway expresses aspect ratio as an output resolution
_RATIOS = {
    "16:9": "1280:768",
    "9:16": "768:1280",
    "1:1": "960:960",
}

_FAILED_STATUSES = {"FAILED", "CANCELLED"}


class RunwayAdapter(ProviderAdapter):
    provider: str = "runway"
    domain = JobDomain.VIDEO

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.endpoint.require_api_key()}"}

    async def submit(self, request: SubmitRequest) -> SubmitResult:
        params = request.params
        prompt = params["prompt"]
        if params.get("style"):
            prompt = f"{prompt}. Style: {params['style']}"
        body = {
            "model": DEFAULT_MODEL,
            "promptText": prompt,
            "duration": int(params.get("duration", 5)),
            "ratio": _RATIOS.get(params.get("aspect_ratio", "16:9"), _RATIOS["16:9"]),
        }
        headers = {**self._headers(), "Idempotency-Key": request.job_id}
        resp = await self.http.request("POST", "/v1/text_to_video", idempotent=False, headers=headers, json=body)

        if resp.status_code >= 400:
            message = error_message(safe_json(resp), f"Runway rejected the request (HTTP {resp.status_code})")
            logger.info("Runway rejected job %s: %s", request.job_id, message)
            return SubmitResult.rejected(message)

        payload = json_body(resp, self.provider)
        task_id = payload.get("id")
        if not task_id:
            return SubmitResult.rejected("Runway response did not include a task id")
        return SubmitResult(external_id=str(task_id), status=JobStatus.PROCESSING)

    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        resp = await self.http.request("GET", f"/v1/tasks/{external_id}", headers=self._headers())

        if resp.status_code == 404:
            return PollResult.failed(f"Runway has no task '{external_id}'", code="PROVIDER_NOT_FOUND")
        if resp.status_code >= 400:
            return PollResult.failed(
                error_message(safe_json(resp), f"Runway status check failed (HTTP {resp.status_code})")
            )

        payload = json_body(resp, self.provider)
        status = str(payload.get("status") or "").upper()
        if status == "SUCCEEDED":
            output = payload.get("output") or []
            if not output:
                return PollResult.failed("Runway finished without a video")
            return PollResult(
                status=JobStatus.COMPLETED,
                result_payload=compact({"video_url": output[0], "outputs": output}),
            )
        if status in _FAILED_STATUSES:
            code = "PROVIDER_CANCELLED" if status == "CANCELLED" else "PROVIDER_FAILED"
            return PollResult.failed(str(payload.get("failure") or f"Runway task {status.lower()}"), code=code)
        # PENDING, THROTTLED, RUNNING
        return PollResult.processing()
