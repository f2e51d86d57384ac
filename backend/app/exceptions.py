"""
Error kinds raised by the comparison pipeline and its collaborators.
"""

from typing import Any, Dict, Optional


class ComparisonError(Exception):
    """Base class for errors surfaced to API clients as `{message, details}`."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationMissing(ComparisonError):
    """A required endpoint, bucket or credential is not configured."""


class UpstreamUnavailable(ComparisonError):
    """The inference service failed after every fallback strategy was tried."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(
            message,
            details={"endpoint": endpoint, "status": status_code},
        )
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body


class MalformedInput(ComparisonError):
    """Required request fields are missing or invalid."""


class UserAlreadyExists(Exception):
    """Raised when registering an email that is already taken."""
