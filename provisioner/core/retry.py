"""Bounded retry helper shared by principal readiness and admin authorization."""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception, stop_after_attempt, wait_incrementing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryResult:
    """Outcome of a bounded retry sequence.

    Attributes:
        succeeded: True when an attempt returned without raising
        value: Return value of the successful attempt
        attempts: Number of attempts made
        last_error: Exception of the final failed attempt
    """
    succeeded: bool
    value: Any = None
    attempts: int = 0
    last_error: Optional[BaseException] = None


def _always(exc: BaseException) -> bool:
    return True


def retry_bounded(
    operation: Callable[[], Any],
    *,
    attempts: int,
    delay: float = 0.0,
    increment: float = 0.0,
    retry_on: Callable[[BaseException], bool] = _always,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> RetryResult:
    """Run `operation` until it succeeds or the attempt budget is spent.

    Waits `delay` seconds before the second attempt, growing by `increment`
    for each further attempt. Exceptions rejected by `retry_on` end the
    sequence immediately. Never raises for an `Exception` from the operation.

    Args:
        operation: Zero-argument callable
        attempts: Maximum number of attempts (at least one is made)
        delay: Initial wait between attempts, in seconds
        increment: Added to the wait after each attempt
        retry_on: Predicate selecting retryable exceptions
        sleep: Sleep function (injectable for tests)
        label: Name used in log messages

    Returns:
        RetryResult
    """
    made = 0

    def _attempt():
        nonlocal made
        made += 1
        return operation()

    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.info(f"[retry] {label}: attempt {state.attempt_number}/{attempts} failed ({exc}); retrying")

    retrying = Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_incrementing(start=delay, increment=increment),
        retry=retry_if_exception(retry_on),
        sleep=sleep,
        before_sleep=_before_sleep,
    )
    try:
        value = retrying(_attempt)
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        logger.warning(f"[retry] {label}: giving up after {made} attempt(s): {last_error}")
        return RetryResult(False, None, made, last_error)
    except Exception as exc:
        logger.debug(f"[retry] {label}: non-retryable failure: {exc}")
        return RetryResult(False, None, made, exc)
    return RetryResult(True, value, made, None)
