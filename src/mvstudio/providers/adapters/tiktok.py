"""TikTok Content Posting API adapter (direct post, pulled from a URL)."""

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

_PRIVACY_LEVELS = {
    "public": "PUBLIC_TO_EVERYONE",
    "unlisted": "MUTUAL_FOLLOW_FRIENDS",
    "private": "SELF_ONLY",
}


def _api_error(payload: dict) -> str | None:
    """TikTok answers 200 with ``error.code != "ok"`` for business failures."""
    err = payload.get("error") or {}
    code = err.get("code", "ok")
    if code == "ok":
        return None
    return f"{err.get('message') or 'TikTok request failed'} ({code})"


class TikTokAdapter(ProviderAdapter):
    provider: str = "tiktok"
    domain = JobDomain.PUBLICATION
    requires_user_credentials = True

    @staticmethod
    def _auth(credentials: UserCredentials) -> dict[str, str]:
        return {"Authorization": f"Bearer {credentials.access_token}"}

    async def submit(self, request: SubmitRequest) -> SubmitResult:
        credentials = self._require_credentials(request.credentials)
        params = request.params
        title = params["title"]
        if params.get("tags"):
            title = f"{title} " + " ".join(f"#{t}" for t in params["tags"])
        body = {
            "post_info": {
                "title": title,
                "privacy_level": _PRIVACY_LEVELS.get(params.get("privacy_status", "public"), "SELF_ONLY"),
                "disable_duet": False,
                "disable_comment": False,
                "disable_stitch": False,
            },
            "source_info": {
                "source": "PULL_FROM_URL",
                "video_url": params["video_url"],
            },
        }
        headers = {**self._auth(credentials), "Idempotency-Key": request.job_id}
        resp = await self.http.request(
            "POST", "/v2/post/publish/video/init/", idempotent=False, headers=headers, json=body
        )

        if resp.status_code >= 400:
            message = error_message(safe_json(resp), f"TikTok rejected the post (HTTP {resp.status_code})")
            logger.info("TikTok rejected job %s: %s", request.job_id, message)
            return SubmitResult.rejected(message)

        payload = json_body(resp, self.provider)
        api_error = _api_error(payload)
        if api_error:
            return SubmitResult.rejected(api_error)
        publish_id = (payload.get("data") or {}).get("publish_id")
        if not publish_id:
            return SubmitResult.rejected("TikTok response did not include a publish id")
        return SubmitResult(external_id=str(publish_id), status=JobStatus.PROCESSING)

    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        credentials = self._require_credentials(credentials)
        # status/fetch is a read despite being a POST
        resp = await self.http.request(
            "POST",
            "/v2/post/publish/status/fetch/",
            idempotent=True,
            headers=self._auth(credentials),
            json={"publish_id": external_id},
        )
        if resp.status_code >= 400:
            return PollResult.failed(
                error_message(safe_json(resp), f"TikTok status check failed (HTTP {resp.status_code})")
            )

        payload = json_body(resp, self.provider)
        api_error = _api_error(payload)
        if api_error:
            return PollResult.failed(api_error)

        data = payload.get("data") or {}
        status = str(data.get("status") or "").upper()
        if status == "PUBLISH_COMPLETE":
            post_ids = data.get("publicaly_available_post_id") or []
            return PollResult(
                status=JobStatus.COMPLETED,
                result_payload=compact({
                    "publish_id": external_id,
                    "post_ids": [str(p) for p in post_ids] or None,
                }),
            )
        if status == "FAILED":
            return PollResult.failed(f"TikTok publish failed: {data.get('fail_reason') or 'unknown reason'}")
        # PROCESSING_DOWNLOAD, PROCESSING_UPLOAD, SEND_TO_USER_INBOX
        return PollResult.processing()
