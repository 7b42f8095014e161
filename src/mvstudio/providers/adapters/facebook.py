"""Facebook page video publishing through the Meta Graph API."""

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


class FacebookAdapter(ProviderAdapter):
    """Posts a video to a Facebook page.

    The page comes from the request's ``page_id`` or, failing that, the
    ``account_id`` stored on the caller's facebook connection.
    """

    provider: str = "facebook"
    domain = JobDomain.PUBLICATION
    requires_user_credentials = True

    @staticmethod
    def _auth(credentials: UserCredentials) -> dict[str, str]:
        return {"Authorization": f"Bearer {credentials.access_token}"}

    async def submit(self, request: SubmitRequest) -> SubmitResult:
        credentials = self._require_credentials(request.credentials)
        params = request.params
        page_id = params.get("page_id") or credentials.account_id
        if not page_id:
            return SubmitResult.rejected("No Facebook page id on the request or the connection", code="INVALID_PAGE")

        body = compact({
            "file_url": params["video_url"],
            "title": params["title"],
            "description": params.get("description") or None,
        })
        headers = {**self._auth(credentials), "Idempotency-Key": request.job_id}
        resp = await self.http.request("POST", f"/{page_id}/videos", idempotent=False, headers=headers, data=body)

        if resp.status_code >= 400:
            message = error_message(safe_json(resp), f"Facebook rejected the video (HTTP {resp.status_code})")
            logger.info("Facebook rejected job %s: %s", request.job_id, message)
            return SubmitResult.rejected(message)

        payload = json_body(resp, self.provider)
        video_id = payload.get("id")
        if not video_id:
            return SubmitResult.rejected("Facebook response did not include a video id")
        return SubmitResult(external_id=str(video_id), status=JobStatus.PROCESSING)

    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        credentials = self._require_credentials(credentials)
        resp = await self.http.request(
            "GET",
            f"/{external_id}",
            params={"fields": "status,permalink_url"},
            headers=self._auth(credentials),
        )
        if resp.status_code == 404:
            return PollResult.failed(f"Facebook has no video '{external_id}'", code="PROVIDER_NOT_FOUND")
        if resp.status_code >= 400:
            return PollResult.failed(
                error_message(safe_json(resp), f"Facebook status check failed (HTTP {resp.status_code})")
            )

        payload = json_body(resp, self.provider)
        video_status = str((payload.get("status") or {}).get("video_status") or "").lower()
        if video_status == "ready":
            permalink = payload.get("permalink_url")
            if permalink and permalink.startswith("/"):
                permalink = f"https://www.facebook.com{permalink}"
            return PollResult(
                status=JobStatus.COMPLETED,
                result_payload=compact({
                    "video_id": external_id,
                    "url": permalink or f"https://www.facebook.com/{external_id}",
                }),
            )
        if video_status == "error":
            return PollResult.failed("Facebook could not process the video")
        return PollResult.processing()
