"""Bounded retry utilities for remote calls."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.stop import stop_base

from .. import metrics
from ..config import ReconcilerSettings
from ..exceptions import (
    EventualConsistencyTimeout,
    PreconditionError,
    TransientError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Never retried, whatever the caller asks for
_NEVER_RETRIED = (ValidationError, PreconditionError)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with a fixed attempt ceiling."""

    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 30.0

    @classmethod
    def from_settings(cls, settings: ReconcilerSettings) -> "RetryPolicy":
        """Build a policy from reconciler settings."""
        return cls(
            max_attempts=max(1, settings.max_attempts),
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
        )

    def delay(self, attempt: int) -> float:
        """Backoff before the retry following ``attempt`` (0-based): base, 2*base, 4*base, ..."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def wait(self) -> wait_exponential:
        return wait_exponential(multiplier=self.base_delay, max=self.max_delay)


class stop_before_timeout(stop_base):
    """Stop when the next backoff would end past ``timeout`` seconds.

    Time is read from ``clock`` so callers can inject a fake one.
    """

    def __init__(self, policy: RetryPolicy, timeout: float, clock: Callable[[], float]):
        self.policy = policy
        self.timeout = timeout
        self.clock = clock
        self.started = clock()

    def __call__(self, retry_state: RetryCallState) -> bool:
        upcoming = self.policy.delay(retry_state.attempt_number - 1)
        return self.clock() - self.started + upcoming > self.timeout


def _record_retry(operation: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        error_type = type(error).__name__ if error is not None else "NotConsistent"
        metrics.retry_attempts_total.labels(operation=operation, error_type=error_type).inc()
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.debug(f"{operation} attempt {retry_state.attempt_number} failed ({error or 'not yet'}), retrying in {delay:.2f}s")

    return before_sleep


def retry_call(
    fn: Callable[[], _T],
    operation: str,
    policy: RetryPolicy | None = None,
    retry_on: tuple[type[BaseException], ...] = (TransientError,),
    sleep: Callable[[float], Any] = time.sleep,
) -> _T:
    """Call ``fn`` retrying on ``retry_on`` errors with exponential backoff.

    Args:
        fn: Zero-argument callable performing the remote call
        operation: Operation name used for logs and metrics
        policy: Retry policy (defaults to RetryPolicy())
        retry_on: Exception classes that trigger a retry
        sleep: Sleep function (injectable for tests)

    Returns:
        Whatever ``fn`` returns

    Raises:
        The last error once the attempt ceiling is reached, or any
        non-retryable error immediately.
    """
    policy = policy or RetryPolicy()
    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=policy.wait(),
        retry=retry_if_exception_type(retry_on) & retry_if_not_exception_type(_NEVER_RETRIED),
        sleep=sleep,
        before_sleep=_record_retry(operation),
    )
    try:
        return retrying(fn)
    except RetryError as e:
        logger.warning(f"{operation} failed after {e.last_attempt.attempt_number} attempts: {e.last_attempt.exception()}")
        e.reraise()


def wait_until(
    predicate: Callable[[], bool],
    operation: str,
    policy: RetryPolicy | None = None,
    timeout: float | None = None,
    sleep: Callable[[float], Any] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Poll ``predicate`` until it returns True.

    Transient errors raised by the predicate count as "not yet". Gives up
    after the attempt ceiling or ``timeout`` seconds, whichever comes first.

    Raises:
        EventualConsistencyTimeout: If the predicate never became true
    """
    policy = policy or RetryPolicy()
    stop = stop_after_attempt(policy.max_attempts)
    if timeout is not None:
        stop = stop | stop_before_timeout(policy, timeout, clock)

    retrying = Retrying(
        stop=stop,
        wait=policy.wait(),
        retry=retry_if_result(lambda ok: not ok) | retry_if_exception_type(TransientError),
        sleep=sleep,
        before_sleep=_record_retry(operation),
    )
    try:
        retrying(predicate)
    except RetryError as e:
        raise EventualConsistencyTimeout(operation, e.last_attempt.attempt_number) from None
