"""
Error handler with retry logic for catalog store calls.

Implements bounded timeouts, timeout escalation and exponential backoff so
that a slow or failing catalog store cannot stall a caller indefinitely.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from datetime import datetime

from .errors import DiscoveryError, UpstreamUnavailable


# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Maximum number of attempts
        initial_timeout_seconds: Timeout of the first attempt in seconds
        timeout_multiplier: Multiplier for timeout escalation on each retry
        backoff_base_seconds: Delay before the first retry
    """
    max_retries: int = 2
    initial_timeout_seconds: float = 5.0
    timeout_multiplier: float = 1.5
    backoff_base_seconds: float = 0.05

    def get_timeout(self, attempt: int) -> float:
        """
        Calculate timeout for a specific attempt.

        timeout = initial_timeout_seconds * (timeout_multiplier ^ attempt)

        Args:
            attempt: The attempt number (0-indexed)

        Returns:
            Timeout in seconds for the given attempt
        """
        return self.initial_timeout_seconds * (self.timeout_multiplier ** attempt)

    def get_backoff_delay(self, attempt: int) -> float:
        """
        Calculate backoff delay before the next attempt.

        delay = backoff_base_seconds * (2 ^ attempt)

        Args:
            attempt: The attempt number that just failed (0-indexed)

        Returns:
            Delay in seconds
        """
        return self.backoff_base_seconds * (2 ** attempt)


class ErrorHandler:
    """
    Runs catalog store operations under a timeout with bounded retries.

    Any failure other than a DiscoveryError is retried; once attempts are
    exhausted the caller sees UpstreamUnavailable, never an empty result.

    Attributes:
        config: Retry configuration
    """

    def __init__(
        self,
        max_retries: int = 2,
        timeout_seconds: float = 5.0,
        timeout_multiplier: float = 1.5,
        backoff_base_seconds: float = 0.05
    ):
        """
        Initialize error handler with retry configuration.

        Args:
            max_retries: Maximum number of attempts (default: 2)
            timeout_seconds: Timeout of the first attempt (default: 5.0)
            timeout_multiplier: Multiplier for timeout escalation (default: 1.5)
            backoff_base_seconds: Delay before the first retry (default: 0.05)
        """
        self.config = RetryConfig(
            max_retries=max(1, max_retries),
            initial_timeout_seconds=timeout_seconds,
            timeout_multiplier=timeout_multiplier,
            backoff_base_seconds=backoff_base_seconds
        )

    async def call_upstream(
        self,
        operation: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> Any:
        """
        Execute a catalog store operation with timeout and retry.

        Args:
            operation: Async callable to execute
            *args: Positional arguments for the operation
            **kwargs: Keyword arguments for the operation

        Returns:
            Result from the first successful attempt

        Raises:
            UpstreamUnavailable: If every attempt timed out or failed
            DiscoveryError: Propagated unchanged from the operation
        """
        name = getattr(operation, "__name__", repr(operation))
        last_error = None

        for attempt in range(self.config.max_retries):
            timeout = self.config.get_timeout(attempt)
            try:
                return await asyncio.wait_for(operation(*args, **kwargs), timeout=timeout)
            except DiscoveryError:
                raise
            except asyncio.TimeoutError as e:
                last_error = e
                self._log_error(name, attempt + 1, f"timed out after {timeout:.2f}s")
            except Exception as e:
                last_error = e
                self._log_error(name, attempt + 1, f"{type(e).__name__}: {e}")

            if attempt < self.config.max_retries - 1:
                await asyncio.sleep(self.config.get_backoff_delay(attempt))

        logger.error(
            f"Operation {name} failed after {self.config.max_retries} attempts"
        )
        raise UpstreamUnavailable("Catalog is temporarily unavailable") from last_error

    def _log_error(self, operation_name: str, attempt: int, detail: str) -> None:
        """
        Log a failed attempt with timestamp and context.

        Args:
            operation_name: Name of the operation that failed
            attempt: Current attempt number (1-indexed)
            detail: Error description
        """
        logger.warning(
            f"Operation failed: {operation_name} | "
            f"Attempt: {attempt}/{self.config.max_retries} | {detail}"
        )
        logger.debug(f"Failure recorded at {datetime.now().isoformat()}")
