"""
camunda8_sdk.tier0_core.errors
───────────────────────────────
Standard error taxonomy for the SDK. Every error raised by the codec, the
auth providers, the REST client and the job worker derives from
CamundaSdkError, so callers can catch one base class or a precise subclass.

Minimal stack: stdlib exceptions, structured metadata for logging
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class CamundaSdkError(Exception):
    """
    Base class for all SDK errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: short description safe to show to operators
    - detail: internal context (defaults to user_message)
    - metadata: extra key/value context, handy for structured logs
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "An unexpected error occurred.",
        detail: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
                **({"metadata": self.metadata} if self.metadata else {}),
            }
        }


# ── Typed error classes ───────────────────────────────────────────────────────

class AuthError(CamundaSdkError):
    """Authentication failure."""
    status_code = 401
    code = "auth_error"


class UpstreamError(CamundaSdkError):
    """Upstream service failure."""
    status_code = 502
    code = "upstream_error"


class ConfigurationError(CamundaSdkError):
    """Misconfiguration detected at construction time."""
    status_code = 500
    code = "configuration_error"


class MissingConfigurationError(ConfigurationError):
    """A required configuration key has no value."""
    code = "missing_configuration"

    def __init__(self, key: str, **metadata: Any) -> None:
        self.key = key
        super().__init__(
            user_message=(
                f"Missing required configuration {key}. Please supply this value "
                "as an environment variable or configuration object field."
            ),
            key=key,
            **metadata,
        )


class TokenEndpointError(AuthError):
    """The OAuth token endpoint failed or returned an unusable body."""
    code = "token_endpoint_error"


class RestApiError(UpstreamError):
    """The REST gateway answered with 4xx/5xx, or could not be reached."""
    code = "rest_api_error"

    def __init__(
        self,
        user_message: str,
        status_code: int | None = None,
        problem: dict | None = None,
        **metadata: Any,
    ) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.problem = problem or {}
        super().__init__(user_message=user_message, **metadata)

    @property
    def detail_text(self) -> str | None:
        """The ``detail`` member of an RFC 7807 problem body, if any."""
        return self.problem.get("detail")


class DrainTimeoutError(CamundaSdkError):
    """A job worker could not drain its active jobs before the deadline."""
    code = "drain_timeout"

    def __init__(self, deadline_ms: int, active_jobs: int = 0) -> None:
        self.deadline_ms = deadline_ms
        self.active_jobs = active_jobs
        super().__init__(
            user_message=f"Failed to drain all jobs in {deadline_ms}ms",
            deadline_ms=deadline_ms,
            active_jobs=active_jobs,
        )


# ── Lossless JSON codec errors ────────────────────────────────────────────────

class LosslessJsonError(CamundaSdkError):
    """Base class for lossless JSON parse/serialize failures."""
    status_code = 422
    code = "lossless_json_error"


class ShapeMismatchError(LosslessJsonError):
    """The document does not have the expected envelope shape."""
    code = "shape_mismatch"


class TypeMismatchError(LosslessJsonError):
    """A field's value conflicts with its declared directive."""
    code = "type_mismatch"


class UnsafeNumberError(LosslessJsonError):
    """An unannotated number cannot be represented as a native number."""
    code = "unsafe_number"

    def __init__(self, path: str, value: str, reason: str) -> None:
        self.path = path
        self.value = value
        self.reason = reason
        super().__init__(
            user_message=(
                f"Cannot safely convert number {value} at '{path}' ({reason}). "
                "Annotate the field as an int64 string or bigint to keep its precision."
            ),
            path=path,
            value=value,
            reason=reason,
        )


class UnsupportedTypeError(LosslessJsonError):
    """A value cannot be written as JSON without ambiguity."""
    code = "unsupported_type"


__all__ = [
    "CamundaSdkError", "AuthError", "UpstreamError", "ConfigurationError",
    "MissingConfigurationError", "TokenEndpointError", "RestApiError",
    "DrainTimeoutError", "LosslessJsonError", "ShapeMismatchError",
    "TypeMismatchError", "UnsafeNumberError", "UnsupportedTypeError",
]
