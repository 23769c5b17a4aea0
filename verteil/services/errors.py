"""
Service layer exceptions.

Every error that reaches a caller of VerteilClient derives from
VerteilApiError and carries the upstream status code and raw error
payload when there was one.
"""

from typing import Any


class VerteilApiError(Exception):
    """Base exception for Verteil API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_response: Any = None,
        endpoint: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_response = error_response
        self.endpoint = endpoint
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "endpoint": self.endpoint,
        }


class ValidationError(VerteilApiError):
    """Request parameters failed validation. Never retried."""

    pass


class ConfigurationError(VerteilApiError):
    """Client is misconfigured (unknown endpoint in a table, missing credentials)."""

    pass


class RateLimitExceeded(VerteilApiError):
    """Local rate limit reached, request was not sent."""

    def __init__(self, endpoint: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for endpoint '{endpoint}', "
            f"retry after {retry_after}s",
            status_code=429,
            endpoint=endpoint,
        )


class TransientTransportError(VerteilApiError):
    """Timeout or connection failure talking to the API."""

    pass


class UpstreamApiError(VerteilApiError):
    """Non-2xx response from the API."""

    pass


class AuthenticationError(VerteilApiError):
    """Credential exchange failed or the API kept rejecting the token."""

    pass


class RetryExhausted(VerteilApiError):
    """Retryable failure persisted through every attempt."""

    def __init__(self, last_error: VerteilApiError, attempts: int, context: str = ""):
        self.last_error = last_error
        self.attempts = attempts
        where = f" for {context}" if context else ""
        super().__init__(
            f"Max retry attempts ({attempts}) reached{where}: {last_error.message}",
            status_code=last_error.status_code,
            error_response=last_error.error_response,
            endpoint=last_error.endpoint,
        )


class DeadlineExceeded(VerteilApiError):
    """Call deadline would pass before the next attempt could start."""

    def __init__(self, context: str, attempts: int, last_error: VerteilApiError | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Deadline exceeded for {context or 'request'} after {attempts} attempt(s)",
            status_code=last_error.status_code if last_error else None,
            error_response=last_error.error_response if last_error else None,
            endpoint=last_error.endpoint if last_error else None,
        )
