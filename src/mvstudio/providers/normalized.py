"""Normalized data models exchanged between the orchestrator and adapters.

Adapters translate vendor payloads INTO these models; the orchestrator never
sees a vendor response directly.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mvstudio.models.enums import TERMINAL_STATUSES, JobStatus


class UserCredentials(BaseModel):
    """A caller's token for a publish platform, resolved from its stored connection."""

    model_config = ConfigDict(extra="forbid")

    access_token: str
    refresh_token: str | None = None
    account_id: str | None = None


class SubmitRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_id: str
    provider: str
    params: dict[str, Any] = Field(default_factory=dict)
    credentials: UserCredentials | None = None


class StatusReport(BaseModel):
    """Provider status mapped onto the job state machine."""

    model_config = ConfigDict(extra="forbid")

    status: JobStatus
    result_payload: dict[str, Any] | None = None
    error_info: dict[str, str] | None = None

    @model_validator(mode="after")
    def check_payload_matches_status(self):
        if self.status == JobStatus.COMPLETED:
            if self.error_info is not None:
                raise ValueError("completed reports cannot carry error_info")
            if self.result_payload is None:
                self.result_payload = {}
        elif self.status == JobStatus.FAILED:
            if self.result_payload is not None:
                raise ValueError("failed reports cannot carry result_payload")
            if self.error_info is None:
                self.error_info = {"code": "PROVIDER_FAILED", "message": "Provider reported failure"}
        elif self.result_payload is not None or self.error_info is not None:
            raise ValueError("non-terminal reports carry neither result_payload nor error_info")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def failure_info(message: str, code: str = "PROVIDER_FAILED") -> dict[str, str]:
    return {"code": code, "message": str(message)}


class SubmitResult(StatusReport):
    # None only when the provider rejected the submission outright
    external_id: str | None = None

    @model_validator(mode="after")
    def check_external_id(self):
        if self.external_id is None and self.status != JobStatus.FAILED:
            raise ValueError("accepted submissions must carry an external_id")
        return self

    @classmethod
    def rejected(cls, message: str, code: str = "PROVIDER_REJECTED") -> "SubmitResult":
        return cls(status=JobStatus.FAILED, error_info=failure_info(message, code))


class PollResult(StatusReport):
    @classmethod
    def failed(cls, message: str, code: str = "PROVIDER_FAILED") -> "PollResult":
        return cls(status=JobStatus.FAILED, error_info=failure_info(message, code))

    @classmethod
    def processing(cls) -> "PollResult":
        return cls(status=JobStatus.PROCESSING)


def compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop keys the vendor left empty."""
    return {k: v for k, v in payload.items() if v is not None}
