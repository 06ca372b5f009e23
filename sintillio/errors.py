"""
Pipeline error taxonomy.

Every error that can terminate a request carries the HTTP status it maps
to and renders as a ``{"error": ..., "details": ...}`` body. Partial
failures (some rows skipped) are not exceptions; they are reported
through ledger status and processed/total counts.
"""

from typing import Any


class PipelineError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, error: str, details: str | None = None):
        super().__init__(error if details is None else f"{error}: {details}")
        self.error = error
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidRequest(PipelineError):
    """Caller sent a malformed or incomplete request."""

    status_code = 400


class Unauthenticated(PipelineError):
    """No bearer token, or the identity provider rejected it."""

    status_code = 401


class Forbidden(PipelineError):
    """Authenticated caller without administrator privilege."""

    status_code = 403


class AuthorizationCheckFailed(PipelineError):
    """The privilege store could not be read while checking a caller."""

    status_code = 500


class ConfigurationError(PipelineError):
    """A required secret or endpoint is not configured."""

    status_code = 500


class PersistenceError(PipelineError):
    """A store write failed."""

    status_code = 500


class ConnectorError(PipelineError):
    """
    Upstream provider returned a non-success response.

    Carries the upstream status code, reason phrase and best-effort
    parsed error body so the ledger can keep them for audit.
    """

    status_code = 502

    def __init__(
        self,
        error: str,
        status: int | None = None,
        status_text: str | None = None,
        details: Any = None,
    ):
        super().__init__(error)
        self.status = status
        self.status_text = status_text
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "status": self.status,
            "statusText": self.status_text,
            "details": self.details,
        }
