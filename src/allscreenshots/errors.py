# -*- coding: utf-8 -*-
"""
Error taxonomy for the Allscreenshots client.

Every failure raised by the client is an AllscreenshotsError subclass.
The `retryable` property is the single source of truth the retry engine
consults; errors that are not retryable end the operation immediately.
"""
from enum import Enum


class ErrorCode(str, Enum):
    """Domain error codes returned by the API."""

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: str | None) -> "ErrorCode":
        """Map a raw wire code to an ErrorCode, UNKNOWN when unrecognized."""
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_status(cls, http_status: int) -> "ErrorCode":
        """Derive a code from the HTTP status when the body carries none."""
        if http_status in (401, 403):
            return cls.UNAUTHORIZED
        if http_status == 404:
            return cls.NOT_FOUND
        if http_status in (400, 422):
            return cls.VALIDATION_ERROR
        if http_status == 429:
            return cls.RATE_LIMIT_EXCEEDED
        if 500 <= http_status <= 599:
            return cls.INTERNAL_ERROR
        return cls.UNKNOWN


RETRYABLE_CODES = frozenset({ErrorCode.RATE_LIMIT_EXCEEDED, ErrorCode.INTERNAL_ERROR})


class AllscreenshotsError(Exception):
    """Base class for all client errors."""

    @property
    def retryable(self) -> bool:
        return False


class ConfigurationError(AllscreenshotsError):
    """Client could not be configured (e.g. missing API key)."""


class ValidationError(AllscreenshotsError):
    """A request failed local validation. Never reaches the network."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Build from the first error of a pydantic ValidationError."""
        errors = exc.errors()
        if not errors:
            return cls("request", str(exc))
        first = errors[0]
        loc = [str(part) for part in first.get("loc", ()) if part != "__root__"]
        field = ".".join(loc) or "request"
        reason = first.get("msg", "invalid value")
        # Strip pydantic's "Value error, " prefix for errors raised by validators
        if reason.startswith("Value error, "):
            reason = reason[len("Value error, "):]
        return cls(field, reason)


class ApiError(AllscreenshotsError):
    """The service answered with a non-success HTTP status."""

    def __init__(
            self,
            code: ErrorCode,
            message: str,
            http_status: int,
            raw_code: str | None = None,
    ):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.raw_code = raw_code or code.value
        super().__init__(f"API error ({self.raw_code}, HTTP {http_status}): {message}")

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES or 500 <= self.http_status <= 599


class NetworkError(AllscreenshotsError):
    """Connection-level failure (DNS, refused, reset, protocol)."""

    @property
    def retryable(self) -> bool:
        return True


class RequestTimeoutError(AllscreenshotsError):
    """A single call exceeded its local deadline."""

    @property
    def retryable(self) -> bool:
        return True


class ResponseDecodeError(AllscreenshotsError):
    """A success response could not be decoded."""


class JobFailedError(AllscreenshotsError):
    """The service reported a terminal failure for an async job."""

    def __init__(self, message: str, job_id: str | None = None, code: str | None = None):
        self.message = message
        self.job_id = job_id
        self.code = code
        super().__init__(f"Job {job_id or '?'} failed: {message}")


class JobCancelledError(AllscreenshotsError):
    """The async job was cancelled on the service side."""

    def __init__(self, job_id: str | None = None):
        self.job_id = job_id
        super().__init__(f"Job {job_id or '?'} was cancelled")


class PollDeadlineExceededError(AllscreenshotsError):
    """Polling ran past the caller's deadline without a terminal status."""

    def __init__(self, job_id: str, deadline: float, last_status: str | None = None):
        self.job_id = job_id
        self.deadline = deadline
        self.last_status = last_status
        super().__init__(
            f"Job {job_id} not finished after {deadline:g}s (last status: {last_status or 'unknown'})"
        )


class PollCancelledError(AllscreenshotsError):
    """Polling stopped because the caller signalled cancellation."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Polling of job {job_id} cancelled by caller")


def is_retryable(error: BaseException) -> bool:
    """Retry predicate: only classified transient errors qualify."""
    return isinstance(error, AllscreenshotsError) and error.retryable
