"""
HttpTransport - raw HTTP calls to the Verteil API.

Classifies every response into an AttemptResult so the orchestrator and
RetryPolicy branch on data instead of exceptions.
"""

from typing import Any

import httpx
from loguru import logger

from verteil.services.errors import (
    AuthenticationError,
    TransientTransportError,
    UpstreamApiError,
)
from verteil.services.retry import RETRYABLE_STATUS_CODES, AttemptResult, Outcome
from verteil.utils import sanitize_log_data

TOKEN_PATH = "/oauth2/token"

BASE_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def extract_error_message(payload: Any, default: str) -> str:
    """Pull the human readable message out of an NDC error payload."""
    if isinstance(payload, dict):
        errors = payload.get("Errors")
        if isinstance(errors, dict):
            error_list = errors.get("Error") or []
            if error_list and isinstance(error_list[0], dict):
                value = error_list[0].get("value") or error_list[0].get("ShortText")
                if value:
                    return str(value)
        for field in ("message", "error_description", "error"):
            if isinstance(payload.get(field), str):
                return payload[field]
    return default


def _json_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:500] or None


class HttpTransport:
    """
    Thin httpx wrapper for the token exchange and NDC calls.

    Usage:
        transport = HttpTransport("https://api.stage.verteil.com")
        token, expires_in = await transport.authenticate(user, password)
        result = await transport.send(path, payload, headers, token)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                verify=self._verify_ssl,
            )
        return self._http_client

    async def authenticate(self, username: str, password: str) -> tuple[str, float | None]:
        """
        Exchange client credentials for a bearer token.

        Returns:
            (access_token, expires_in seconds or None)

        Raises:
            TransientTransportError: Network failure or a retryable HTTP status
            AuthenticationError: Credentials rejected or no token in the response
        """
        client = await self._get_http_client()

        try:
            response = await client.post(
                TOKEN_PATH,
                auth=(username, password),
                params={"grant_type": "client_credentials", "scope": "api"},
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as e:
            raise TransientTransportError(f"Failed to reach token endpoint: {e}") from e

        if response.status_code != 200:
            payload = _json_or_text(response)
            error_class = (
                TransientTransportError
                if response.status_code in RETRYABLE_STATUS_CODES
                else AuthenticationError
            )
            raise error_class(
                extract_error_message(payload, f"Authentication failed with HTTP {response.status_code}"),
                status_code=response.status_code,
                error_response=payload,
            )

        payload = _json_or_text(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthenticationError(
                "Token response did not contain an access_token",
                status_code=response.status_code,
                error_response=sanitize_log_data(payload) if isinstance(payload, dict) else payload,
            )

        expires_in = payload.get("expires_in")
        return token, float(expires_in) if expires_in else None

    async def send(
        self,
        path: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        token: str,
        endpoint: str | None = None,
    ) -> AttemptResult:
        """POST one NDC request and classify the outcome."""
        client = await self._get_http_client()
        request_headers = {
            **BASE_HEADERS,
            **{k: v for k, v in headers.items() if v},
            "Authorization": f"Bearer {token}",
        }

        try:
            response = await client.post(path, json=payload, headers=request_headers)
        except httpx.TimeoutException as e:
            error = TransientTransportError(
                f"Request to {path} timed out after {self._timeout}s", endpoint=endpoint
            )
            error.__cause__ = e
            return AttemptResult.failure(Outcome.RETRYABLE, error)
        except httpx.RequestError as e:
            error = TransientTransportError(f"Request to {path} failed: {e}", endpoint=endpoint)
            error.__cause__ = e
            return AttemptResult.failure(Outcome.RETRYABLE, error)

        status = response.status_code

        if 200 <= status < 300:
            try:
                return AttemptResult.success(status, response.json())
            except ValueError:
                return AttemptResult.failure(
                    Outcome.FATAL,
                    UpstreamApiError(
                        "Response body is not valid JSON",
                        status_code=status,
                        error_response=response.text[:500],
                        endpoint=endpoint,
                    ),
                )

        body = _json_or_text(response)
        message = extract_error_message(body, f"HTTP {status}")
        logger.debug(f"{endpoint or path} returned HTTP {status}: {message}")

        if status == 401:
            return AttemptResult.failure(
                Outcome.UNAUTHORIZED,
                AuthenticationError(message, status_code=status, error_response=body, endpoint=endpoint),
            )

        error = UpstreamApiError(message, status_code=status, error_response=body, endpoint=endpoint)
        if status in RETRYABLE_STATUS_CODES:
            return AttemptResult.failure(Outcome.RETRYABLE, error)
        return AttemptResult.failure(Outcome.FATAL, error)

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
