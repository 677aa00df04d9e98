"""Service error taxonomy mapped onto HTTP status codes."""

from __future__ import annotations


class ClaimServiceError(Exception):
    """Base exception for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ClaimServiceError):
    """Raised when client input is missing or malformed."""

    status_code = 400


class ConfigurationError(ClaimServiceError):
    """Raised when the deployment is missing required configuration."""

    status_code = 500


class StorageError(ClaimServiceError):
    """Raised when the document store is unreachable or rejects an operation."""

    status_code = 500

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail

    @classmethod
    def wrap(cls, message: str, exc: BaseException) -> "StorageError":
        return cls(message, detail=str(exc) or type(exc).__name__)


class MethodNotAllowedError(ClaimServiceError):
    """Raised when an endpoint is called with an unsupported HTTP verb."""

    status_code = 405

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(message)
