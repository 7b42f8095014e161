"""Kling text-to-video adapter."""

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

_ASPECT_RATIOS = {"16:9", "9:16", "1:1"}


class KlingAdapter(ProviderAdapter):
    """Kling wraps every response in ``{"code": 0, "message": ..., "data": {...}}``.

    A non-zero ``code`` is a business failure even when the HTTP status is 200.
    """

    provider: str = "kling"
    domain = JobDomain.VIDEO

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.endpoint.require_api_key()}"}

    @staticmethod
    def _business_error(payload: dict) -> str | None:
        code = payload.get("code", 0)
        if code in (0, "0", None):
            return None
        return f"{payload.get('message') or 'Kling request failed'} (code {code})"

    async def submit(self, request: SubmitRequest) -> SubmitResult:
        params = request.params
        prompt = params["prompt"]
        if params.get("style"):
            prompt = f"{prompt}. Style: {params['style']}"
        body = compact({
            "prompt": prompt,
            "duration": str(params.get("duration", 5)),
            "aspect_ratio": params.get("aspect_ratio") if params.get("aspect_ratio") in _ASPECT_RATIOS else "16:9",
            "mode": "pro" if params.get("resolution") == "4k" else "std",
            "external_task_id": request.job_id,
        })
        headers = {**self._headers(), "Idempotency-Key": request.job_id}
        resp = await self.http.request("POST", "/v1/videos/text2video", idempotent=False, headers=headers, json=body)

        if resp.status_code >= 400:
            message = error_message(safe_json(resp), f"Kling rejected the request (HTTP {resp.status_code})")
            logger.info("Kling rejected job %s: %s", request.job_id, message)
            return SubmitResult.rejected(message)

        payload = json_body(resp, self.provider)
        business_error = self._business_error(payload)
        if business_error:
            return SubmitResult.rejected(business_error)
        task_id = (payload.get("data") or {}).get("task_id")
        if not task_id:
            return SubmitResult.rejected("Kling response did not include a task id")
        return SubmitResult(external_id=str(task_id), status=JobStatus.PROCESSING)

    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        resp = await self.http.request("GET", f"/v1/videos/text2video/{external_id}", headers=self._headers())

        if resp.status_code == 404:
            return PollResult.failed(f"Kling has no task '{external_id}'", code="PROVIDER_NOT_FOUND")
        if resp.status_code >= 400:
            return PollResult.failed(
                error_message(safe_json(resp), f"Kling status check failed (HTTP {resp.status_code})")
            )

        payload = json_body(resp, self.provider)
        business_error = self._business_error(payload)
        if business_error:
            return PollResult.failed(business_error)

        data = payload.get("data") or {}
        status = str(data.get("task_status") or "").lower()
        if status == "succeed":
            videos = (data.get("task_result") or {}).get("videos") or []
            if not videos or not videos[0].get("url"):
                return PollResult.failed("Kling finished without a video")
            return PollResult(
                status=JobStatus.COMPLETED,
                result_payload=compact({
                    "video_url": videos[0]["url"],
                    "duration": videos[0].get("duration"),
                }),
            )
        if status == "failed":
            return PollResult.failed(str(data.get("task_status_msg") or "Kling generation failed"))
        return PollResult.processing()
