"""
Ledger Retry Policy

Bounded retries with exponential backoff for ledger reads. Only transient
failures are retried: LedgerTransientException and attempts that exceed
the per-attempt timeout. Any other exception propagates on first sight.
"""

from __future__ import annotations

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, TYPE_CHECKING

from core.schemas.errors import LedgerTransientException, LedgerUnavailableException

if TYPE_CHECKING:
    from core.config.runtime import LedgerConfig


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget for one logical ledger call.

    Attributes:
        max_retries: Retries after the first attempt (0 = single attempt)
        initial_delay: Sleep before the first retry, in seconds
        backoff_factor: Multiplier applied to the delay after each retry
        max_delay: Upper bound for a single sleep
        attempt_timeout: Per-attempt wall clock limit; None disables it
    """
    max_retries: int = 3
    initial_delay: float = 0.5
    backoff_factor: float = 2.0
    max_delay: float = 8.0
    attempt_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """Sleep before the given retry (1-based)."""
        delay = self.initial_delay * (self.backoff_factor ** (retry_number - 1))
        return min(delay, self.max_delay)

    @classmethod
    def from_config(cls, config: "LedgerConfig") -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            initial_delay=config.retry_delay,
            backoff_factor=config.backoff_factor,
            max_delay=config.max_retry_delay,
            attempt_timeout=config.timeout,
        )


def _run_with_timeout(fn: Callable[..., T], args: tuple[Any, ...], timeout: float) -> T:
    pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    try:
        future = pool.submit(fn, *args)
        return future.result(timeout=timeout)
    finally:
        # Do not wait for a hung attempt
        pool.shutdown(wait=False)


def call_with_retry(
    fn: Callable[..., T],
    *args: Any,
    policy: Optional[RetryPolicy] = None,
    context: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call fn(*args), retrying transient ledger failures.

    Args:
        fn: The ledger operation
        *args: Positional arguments for fn
        policy: Retry budget (defaults to RetryPolicy())
        context: Identifier carried into the failure, typically the batch id
        sleep: Injectable sleep for tests

    Returns:
        The first successful result of fn

    Raises:
        LedgerUnavailableException: When every attempt failed transiently
            (ledger transient errors, timeouts, OSError from the transport)
        Exception: Any non-transient exception raised by fn, unchanged
    """
    policy = policy or RetryPolicy()
    last_error: Optional[str] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            if policy.attempt_timeout:
                return _run_with_timeout(fn, args, policy.attempt_timeout)
            return fn(*args)
        except concurrent.futures.TimeoutError as e:
            if policy.attempt_timeout:
                last_error = f"attempt timed out after {policy.attempt_timeout}s"
            else:
                last_error = f"{type(e).__name__}: {e}"
        except LedgerTransientException as e:
            last_error = e.message
        except OSError as e:
            # Connection resets, socket timeouts and similar transport failures
            last_error = f"{type(e).__name__}: {e}"

        logger.warning(
            f"Ledger call failed (attempt {attempt}/{policy.max_attempts}"
            f"{', batch ' + context if context else ''}): {last_error}"
        )
        if attempt < policy.max_attempts:
            sleep(policy.delay_for(attempt))

    raise LedgerUnavailableException(
        f"Ledger unavailable after {policy.max_attempts} attempts",
        batch_id=context,
        attempts=policy.max_attempts,
        last_error=last_error,
    )
