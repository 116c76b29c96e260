"""
Error taxonomy for image generation.

Every error carries the HTTP status the API boundary should answer with,
so routers never need to inspect error types individually.
"""
from typing import Any, Optional


class GenerationError(Exception):
    """Base class for all failures surfaced to API clients."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GenerationError):
    """Missing or malformed request fields."""
    status_code = 400


class UnknownProviderError(GenerationError):
    status_code = 400

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider '{provider}'")
        self.provider = provider


class MissingCredentialError(GenerationError):
    """The selected provider has neither a configured nor a supplied key."""
    status_code = 400

    def __init__(self, provider: str):
        super().__init__(f"No API key configured for provider '{provider}'")
        self.provider = provider


class UpstreamError(GenerationError):
    """
    A provider call failed: non-success HTTP status, transport failure
    or an unreadable body. status is None for transport-level failures.
    """

    def __init__(self, provider: str, status: Optional[int], body: str):
        if status is None:
            message = f"{provider} request failed: {body}"
        else:
            message = f"{provider} returned status {status}: {body}"
        super().__init__(message)
        self.provider = provider
        self.status = status
        self.body = body


class InvalidResponseError(GenerationError):
    """Provider answered successfully but without the expected payload."""


class JobFailedError(GenerationError):
    """Asynchronous job reached a terminal failure state."""

    def __init__(self, job_id: str, payload: Any = None):
        detail = ""
        if isinstance(payload, dict) and payload.get("error"):
            detail = f": {payload['error']}"
        super().__init__(f"Job {job_id} failed{detail}")
        self.job_id = job_id
        self.payload = payload


class JobTimeoutError(GenerationError, TimeoutError):
    """Asynchronous job was still pending after the maximum poll attempts."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(f"Job {job_id} did not complete after {attempts} status checks")
        self.job_id = job_id
        self.attempts = attempts


class JobCancelledError(GenerationError):
    """Polling stopped because the caller went away."""
    status_code = 499

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} abandoned: client disconnected")
        self.job_id = job_id
