"""
Retry decorators with exponential backoff

Provides retry logic for transient failures with:
- Exponential backoff (base 2.0) capped at max_delay
- Jitter (+/-25%) to spread out competing writers
- Exception filtering, by type or by a predicate
- Callback support for metrics integration

Usage:
    from utils.retry import retry_with_backoff

    @retry_with_backoff(max_retries=3, base_delay=0.1,
                        retryable_exceptions=(CommitConflictError,))
    def commit_new_watermark():
        snapshot = table.snapshot()
        ...
        table.commit(snapshot.version, actions, operation="SYNC IDENTITY")
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, Exception, float], None]


def compute_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Delay before retry number attempt + 1 (attempt is zero based).

    Args:
        attempt: Zero based index of the attempt that just failed
        base_delay: Initial delay in seconds
        max_delay: Upper bound before jitter
        exponential_base: Growth factor per attempt
        jitter: Add +/-25% random jitter; the result is floored at
            min(0.1, base_delay)

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        jitter_amount = delay * 0.25
        delay = max(min(0.1, base_delay), delay + random.uniform(-jitter_amount, jitter_amount))
    return delay


def _retry_loop(
    func: Callable,
    args: tuple,
    kwargs: dict,
    max_retries: int,
    should_retry: Callable[[Exception], bool],
    delay_for: Callable[[int], float],
    on_retry: Optional[RetryCallback],
) -> Any:
    func_name = getattr(func, "__name__", "function")

    for attempt in range(max_retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not should_retry(e):
                logger.error(f"Non-retryable exception in {func_name}: {type(e).__name__}: {e}")
                raise

            if attempt == max_retries:
                logger.error(
                    f"Max retries ({max_retries}) exceeded for {func_name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            delay = delay_for(attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed for {func_name}: "
                f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
            )

            if on_retry:
                try:
                    on_retry(attempt + 1, e, delay)
                except Exception as callback_error:
                    logger.error(f"Error in retry callback: {callback_error}")

            time.sleep(delay)

    raise RuntimeError(f"Unexpected exit from retry loop for {func_name}")


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    on_retry: Optional[RetryCallback] = None,
):
    """
    Decorator that retries a function with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Add random jitter (default: True)
        retryable_exceptions: Exception types to retry (default: all exceptions)
        on_retry: Callback function(attempt, exception, delay) called on each retry

    Returns:
        Decorated function with retry logic
    """
    def should_retry(exc: Exception) -> bool:
        return retryable_exceptions is None or isinstance(exc, retryable_exceptions)

    def delay_for(attempt: int) -> float:
        return compute_backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return _retry_loop(func, args, kwargs, max_retries, should_retry, delay_for, on_retry)

        return wrapper
    return decorator


RETRYABLE_DB_PATTERNS = (
    "connection",
    "timeout",
    "deadlock",
    "lock wait timeout",
    "server has gone away",
    "broken pipe",
    "network error",
    "communication link failure",
)

RETRYABLE_DB_EXCEPTION_NAMES = (
    "connectionerror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
)


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is transient

    Matches connection, timeout and deadlock style errors by exception type
    name or message; syntax errors and constraint violations are not retried.
    """
    message = str(exception).lower()
    type_name = type(exception).__name__.lower()

    if type_name in RETRYABLE_DB_EXCEPTION_NAMES:
        return True
    return any(p in message or p in type_name for p in RETRYABLE_DB_PATTERNS)


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[RetryCallback] = None,
):
    """
    Retry decorator for database reads that only retries transient errors

    Example:
        @retry_database_operation(max_retries=5)
        def fetch_extreme(cursor, query):
            cursor.execute(query)
            return cursor.fetchone()
    """
    def delay_for(attempt: int) -> float:
        return compute_backoff_delay(attempt, base_delay, 60.0)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return _retry_loop(
                func, args, kwargs, max_retries, is_retryable_db_exception, delay_for, on_retry
            )

        return wrapper
    return decorator
