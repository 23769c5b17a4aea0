"""
RetryPolicy - bounded retries with exponential backoff and jitter.

Each attempt reports a typed AttemptResult rather than raising for HTTP
failures:
- SUCCESS: 2xx response, return it
- RETRYABLE: 408/429/5xx or transport failure, back off and try again
- UNAUTHORIZED: 401, handed back to the caller (re-authentication is not
  the retry loop's job)
- FATAL: anything else, handed back immediately

Exceptions escaping an attempt are classified the same way: httpx
transport errors and retryable-status API errors are retried, everything
else propagates untouched.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from loguru import logger

from verteil.services.errors import (
    DeadlineExceeded,
    RetryExhausted,
    TransientTransportError,
    VerteilApiError,
)

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
MAX_JITTER_SECONDS = 1.0


class Outcome(str, Enum):
    """Classification of a single attempt."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    UNAUTHORIZED = "unauthorized"
    FATAL = "fatal"


@dataclass
class AttemptResult:
    """Result of one call to the API."""

    outcome: Outcome
    status_code: int | None = None
    data: dict[str, Any] | None = None
    error: VerteilApiError | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def success(cls, status_code: int, data: dict[str, Any]) -> "AttemptResult":
        return cls(Outcome.SUCCESS, status_code=status_code, data=data)

    @classmethod
    def failure(cls, outcome: Outcome, error: VerteilApiError) -> "AttemptResult":
        return cls(outcome, status_code=error.status_code, error=error)


class RetryPolicy:
    """
    Executes an attempt function with retries.

    Usage:
        policy = RetryPolicy(max_attempts=3, base_delay=0.1)
        result = await policy.execute(
            lambda: transport.send(path, payload, headers, token),
            context="airShopping",
        )
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.1,
        multiplier: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.multiplier = multiplier
        self._sleep = sleep

    def get_delay(self, attempt: int) -> float:
        """Backoff in seconds after ``attempt`` (1-based) failed."""
        backoff = self.base_delay * self.multiplier ** (attempt - 1)
        return backoff + random.uniform(0, min(MAX_JITTER_SECONDS, backoff * 0.1))

    @staticmethod
    def is_retryable_exception(error: BaseException) -> bool:
        if isinstance(error, (httpx.TransportError, TransientTransportError)):
            return True
        if isinstance(error, VerteilApiError):
            return error.status_code in RETRYABLE_STATUS_CODES
        return False

    async def execute(
        self,
        operation: Callable[[], Awaitable[AttemptResult]],
        context: str = "",
        deadline: float | None = None,
    ) -> AttemptResult:
        """
        Run ``operation`` until it stops returning RETRYABLE.

        Args:
            operation: Zero-argument coroutine function performing one attempt
            context: Label for logs and errors (usually the endpoint name)
            deadline: ``time.monotonic()`` value after which no new attempt starts

        Returns:
            The first non-retryable AttemptResult (SUCCESS, UNAUTHORIZED or FATAL)

        Raises:
            RetryExhausted: Every attempt was retryable
            DeadlineExceeded: ``deadline`` passed, or the next backoff would run past it
        """
        attempt = 1
        last_error: VerteilApiError | None = None
        while True:
            # The backoff sleep itself may overrun the deadline
            if attempt > 1 and deadline is not None and time.monotonic() >= deadline:
                raise DeadlineExceeded(context, attempts=attempt - 1, last_error=last_error) from last_error

            try:
                result = await operation()
            except Exception as e:
                if not self.is_retryable_exception(e):
                    raise
                if isinstance(e, VerteilApiError):
                    error = e
                else:
                    error = TransientTransportError(
                        str(e) or type(e).__name__, endpoint=context or None
                    )
                    error.__cause__ = e
                result = AttemptResult.failure(Outcome.RETRYABLE, error)

            if result.outcome is not Outcome.RETRYABLE:
                return result

            last_error = result.error or TransientTransportError(
                "Retryable failure", status_code=result.status_code, endpoint=context or None
            )

            if attempt >= self.max_attempts:
                logger.error(
                    f"Giving up on {context or 'request'} after {attempt} attempts: "
                    f"{last_error.message}"
                )
                raise RetryExhausted(last_error, attempts=attempt, context=context) from last_error

            delay = self.get_delay(attempt)
            if deadline is not None and time.monotonic() + delay >= deadline:
                raise DeadlineExceeded(context, attempts=attempt, last_error=last_error) from last_error

            logger.warning(
                f"Retry attempt {attempt}/{self.max_attempts} for {context or 'request'}: "
                f"{last_error.message} (status {last_error.status_code}), "
                f"next attempt in {delay * 1000:.0f}ms"
            )
            await self._sleep(delay)
            attempt += 1
