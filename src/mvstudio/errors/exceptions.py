"""Exception taxonomy for the mvstudio API and job lifecycle."""


class MVStudioError(Exception):
    """Base exception for mvstudio."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class InvalidInputError(MVStudioError):
    """Request parameters failed validation."""

    def __init__(self, message: str, details=None):
        super().__init__("INVALID_INPUT", message, details, status_code=400)


class NotFoundError(MVStudioError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(MVStudioError):
    """Authentication required or token invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class NotAuthorizedError(MVStudioError):
    """Caller does not own the project the resource belongs to."""

    def __init__(self, message: str = "Not authorized for this project"):
        super().__init__("NOT_AUTHORIZED", message, status_code=403)


class ConflictError(MVStudioError):
    """Resource state conflict."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFLICT", message, details, status_code=409)


class ProviderError(MVStudioError):
    """Base for failures talking to an external provider."""

    def __init__(self, code: str, provider: str, message: str, details=None):
        self.provider = provider
        merged = {"provider": provider}
        if details:
            merged.update(details)
        super().__init__(code, message, merged, status_code=502)

    def with_job(self, job_id: str) -> "ProviderError":
        """Attach the persisted job id so the caller can look the record up."""
        self.details = {**(self.details or {}), "job_id": job_id}
        return self


class ProviderUnavailableError(ProviderError):
    """Transport failure, timeout, or exhausted retries."""

    def __init__(self, provider: str, message: str, details=None):
        super().__init__("PROVIDER_UNAVAILABLE", provider, message, details)


class ProviderAuthError(ProviderError):
    """Provider rejected (or was never given) credentials."""

    def __init__(self, provider: str, message: str = "Provider credentials rejected", details=None):
        super().__init__("PROVIDER_AUTH_ERROR", provider, message, details)


class InvalidTransitionError(MVStudioError):
    """A terminal write lost the race; resolved inside the orchestrator."""

    def __init__(self, job_id: str, current_status: str | None = None):
        self.job_id = job_id
        self.current_status = current_status
        super().__init__(
            "INVALID_TRANSITION",
            f"Job '{job_id}' is already terminal",
            {"job_id": job_id, "status": current_status},
            status_code=409,
        )
