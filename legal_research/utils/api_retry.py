"""
Retry utilities for the external legal and medical literature APIs.

Applies to the official JSON/XML APIs (CourtListener, Caselaw Access Project,
NCBI E-utilities). Scraped sites are never retried: a failed scrape degrades
to an empty result and the next attempt waits for the domain limiter.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx

from legal_research.utils.backoff import BackoffConfig, calculate_backoff
from legal_research.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class APIRetryError(Exception):
    """Raised when all retry attempts are exhausted.

    Attributes:
        attempts: Number of attempts made
        last_error: The last exception that caused failure
        last_status: The last HTTP status code (if applicable)
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Exception | None = None,
        last_status: int | None = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
        self.last_status = last_status


@dataclass
class APIRetryPolicy:
    """Retry policy for official public APIs.

    Attributes:
        max_retries: Maximum retry attempts
        backoff: Backoff configuration for delay calculation
        retryable_exceptions: Exception types that are safe to retry
        retryable_status_codes: HTTP status codes that are safe to retry
        non_retryable_status_codes: HTTP status codes that should never be retried

    Example:
        >>> policy = APIRetryPolicy(max_retries=5)
        >>> policy.should_retry_status(429)
        True
        >>> policy.should_retry_status(404)
        False
    """

    max_retries: int = 3
    backoff: BackoffConfig = field(default_factory=BackoffConfig)

    # Transport-level failures (connect, read, timeouts)
    retryable_exceptions: tuple[type[Exception], ...] = (
        httpx.TransportError,
        ConnectionError,
        TimeoutError,
    )

    # 429: rate limited; 5xx: transient upstream failure
    retryable_status_codes: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )

    non_retryable_status_codes: frozenset[int] = field(
        default_factory=lambda: frozenset({400, 401, 403, 404, 410})
    )

    def __post_init__(self) -> None:
        """Validate policy configuration."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")

        overlap = self.retryable_status_codes & self.non_retryable_status_codes
        if overlap:
            raise ValueError(
                f"Status codes cannot be both retryable and non-retryable: {overlap}"
            )

    def should_retry_exception(self, exc: Exception) -> bool:
        return isinstance(exc, self.retryable_exceptions)

    def should_retry_status(self, status: int) -> bool:
        """Check if HTTP status code is retryable.

        Unknown statuses are treated as non-retryable.
        """
        if status in self.non_retryable_status_codes:
            return False
        return status in self.retryable_status_codes


async def retry_api_call(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: APIRetryPolicy | None = None,
    operation_name: str | None = None,
    **kwargs: Any,
) -> T:
    """Execute async function with retry logic for public APIs.

    Retries on:
    - Transport errors (httpx.TransportError, ConnectionError, TimeoutError)
    - httpx.HTTPStatusError whose status is in policy.retryable_status_codes

    Re-raises immediately on any other exception, including non-retryable
    HTTP statuses such as 404.

    Args:
        func: Async function to call
        *args: Positional arguments for func
        policy: Retry policy (default: APIRetryPolicy())
        operation_name: Name for logging (default: func.__name__)
        **kwargs: Keyword arguments for func

    Returns:
        Result from func

    Raises:
        APIRetryError: When all retries exhausted
        Exception: When a non-retryable error occurs
    """
    if policy is None:
        policy = APIRetryPolicy()

    op_name = operation_name or getattr(func, "__name__", "api_call")
    last_error: Exception | None = None
    last_status: int | None = None

    for attempt in range(policy.max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except httpx.HTTPStatusError as e:
            last_error = e
            last_status = e.response.status_code

            if not policy.should_retry_status(last_status):
                logger.warning(
                    "Non-retryable HTTP status",
                    operation=op_name,
                    status=last_status,
                    attempt=attempt + 1,
                )
                raise

            if attempt >= policy.max_retries:
                break

            delay = calculate_backoff(attempt, policy.backoff)
            logger.info(
                "Retrying after HTTP error",
                operation=op_name,
                status=last_status,
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                delay_seconds=round(delay, 2),
            )
            await asyncio.sleep(delay)

        except Exception as e:
            last_error = e

            if not policy.should_retry_exception(e):
                logger.warning(
                    "Non-retryable exception",
                    operation=op_name,
                    error_type=type(e).__name__,
                    error=str(e),
                    attempt=attempt + 1,
                )
                raise

            if attempt >= policy.max_retries:
                break

            delay = calculate_backoff(attempt, policy.backoff)
            logger.info(
                "Retrying after exception",
                operation=op_name,
                error_type=type(e).__name__,
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                delay_seconds=round(delay, 2),
            )
            await asyncio.sleep(delay)

    raise APIRetryError(
        f"{op_name} failed after {policy.max_retries + 1} attempts",
        attempts=policy.max_retries + 1,
        last_error=last_error,
        last_status=last_status,
    )


#: Policy for the legal APIs (CourtListener, Caselaw Access Project).
#: Their free tiers throttle aggressively, so retries stay few and short.
LEGAL_API_POLICY = APIRetryPolicy(
    max_retries=2,
    backoff=BackoffConfig(base_delay=1.0, max_delay=10.0),
)

#: Policy for NCBI E-utilities
PUBMED_API_POLICY = APIRetryPolicy(
    max_retries=3,
    backoff=BackoffConfig(base_delay=0.5, max_delay=10.0),
)
