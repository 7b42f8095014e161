"""YouTube Data API v3 publishing adapter.

Publishing is a resumable upload: the source video is downloaded, an upload
session is opened with the video metadata, and the bytes are PUT to the
session URL. YouTube then processes the video asynchronously, which is what
``poll`` tracks.
"""

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

# "Music" category
MUSIC_CATEGORY_ID = "10"

_FAILED_UPLOAD_STATUSES = {"failed", "rejected", "deleted"}


class YouTubeAdapter(ProviderAdapter):
    provider: str = "youtube"
    domain = JobDomain.PUBLICATION
    requires_user_credentials = True

    @staticmethod
    def _auth(credentials: UserCredentials) -> dict[str, str]:
        return {"Authorization": f"Bearer {credentials.access_token}"}

    async def submit(self, request: SubmitRequest) -> SubmitResult:
        credentials = self._require_credentials(request.credentials)
        params = request.params

        source = await self.http.request("GET", params["video_url"])
        if source.status_code >= 400:
            return SubmitResult.rejected(
                f"Could not download source video (HTTP {source.status_code})", code="SOURCE_UNAVAILABLE"
            )
        content_type = source.headers.get("content-type", "video/mp4")
        if not content_type.startswith("video/"):
            content_type = "video/mp4"

        metadata = {
            "snippet": compact({
                "title": params["title"],
                "description": params.get("description") or "",
                "tags": params.get("tags") or None,
                "categoryId": MUSIC_CATEGORY_ID,
            }),
            "status": {
                "privacyStatus": params.get("privacy_status", "public"),
                "selfDeclaredMadeForKids": False,
            },
        }
        session = await self.http.request(
            "POST",
            "/upload/youtube/v3/videos",
            idempotent=False,
            params={"uploadType": "resumable", "part": "snippet,status"},
            headers={
                **self._auth(credentials),
                "X-Upload-Content-Type": content_type,
                "X-Upload-Content-Length": str(len(source.content)),
            },
            json=metadata,
        )
        if session.status_code >= 400:
            message = error_message(safe_json(session), f"YouTube refused the upload (HTTP {session.status_code})")
            logger.info("YouTube rejected job %s: %s", request.job_id, message)
            return SubmitResult.rejected(message)
        upload_url = session.headers.get("location")
        if not upload_url:
            return SubmitResult.rejected("YouTube did not return an upload session")

        upload = await self.http.request(
            "PUT",
            upload_url,
            idempotent=False,
            headers={**self._auth(credentials), "Content-Type": content_type},
            content=source.content,
        )
        if upload.status_code >= 400:
            return SubmitResult.rejected(
                error_message(safe_json(upload), f"YouTube upload failed (HTTP {upload.status_code})")
            )

        payload = json_body(upload, self.provider)
        video_id = payload.get("id")
        if not video_id:
            return SubmitResult.rejected("YouTube upload response did not include a video id")
        return SubmitResult(external_id=str(video_id), status=JobStatus.PROCESSING)

    async def poll(self, external_id: str, credentials: UserCredentials | None = None) -> PollResult:
        credentials = self._require_credentials(credentials)
        resp = await self.http.request(
            "GET",
            "/youtube/v3/videos",
            params={"part": "status", "id": external_id},
            headers=self._auth(credentials),
        )
        if resp.status_code >= 400:
            return PollResult.failed(
                error_message(safe_json(resp), f"YouTube status check failed (HTTP {resp.status_code})")
            )

        items = json_body(resp, self.provider).get("items") or []
        if not items:
            return PollResult.failed(f"YouTube has no video '{external_id}'", code="PROVIDER_NOT_FOUND")

        status = items[0].get("status") or {}
        upload_status = str(status.get("uploadStatus") or "").lower()
        if upload_status == "processed":
            return PollResult(
                status=JobStatus.COMPLETED,
                result_payload=compact({
                    "video_id": external_id,
                    "url": f"https://www.youtube.com/watch?v={external_id}",
                    "privacy_status": status.get("privacyStatus"),
                }),
            )
        if upload_status in _FAILED_UPLOAD_STATUSES:
            reason = status.get("failureReason") or status.get("rejectionReason") or upload_status
            return PollResult.failed(f"YouTube upload {upload_status}: {reason}")
        # uploaded
        return PollResult.processing()
