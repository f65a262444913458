"""Retry executor built on tenacity.

The delay schedule drives both waiting and stopping: an operation gets one
attempt plus one retry per delay. A classifier decides after every failure
whether to keep going and which error to surface if the loop ends there.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Iterable, Iterator, Optional, Tuple, Type, TypeVar

from tenacity import RetryCallState, Retrying, before_sleep_log

from steadfast.domain.config.retry import Classifier, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_always(state: RetryCallState, error: BaseException) -> Tuple[bool, BaseException]:
    """Default classifier: retry every error and report it unchanged."""
    return True, error


def retry_if(*error_types: Type[BaseException]) -> Classifier:
    """Create a classifier that retries only instances of ``error_types``."""

    def _classify(state: RetryCallState, error: BaseException) -> Tuple[bool, BaseException]:
        return isinstance(error, error_types), error

    return _classify


class _DelayCursor:
    """Hands out one delay per attempt number, pulled lazily from a schedule."""

    def __init__(self, delays: Iterable[float]):
        self._delays: Iterator[float] = iter(delays)
        self._attempt = 0
        self._delay: Optional[float] = None

    def delay_for(self, attempt_number: int) -> Optional[float]:
        if attempt_number != self._attempt:
            self._attempt = attempt_number
            self._delay = next(self._delays, None)
        return self._delay


class _Verdict:
    """Classification of the most recent failed attempt."""

    def __init__(self) -> None:
        self.attempt = 0
        self.error: Optional[BaseException] = None
        self.effective: Optional[BaseException] = None


def execute(operation: Callable[..., T], policy: Optional[RetryPolicy] = None, /, *args: Any, **kwargs: Any) -> T:
    """Call ``operation(*args, **kwargs)``, retrying failures per ``policy``.

    Args:
        operation: Fallible callable
        policy: Retry policy (defaults to ``RetryPolicy()``)
        *args: Positional arguments passed to every attempt
        **kwargs: Keyword arguments passed to every attempt

    Returns:
        Result of the first successful attempt

    Raises:
        Exception: The effective error of the last failed attempt, as chosen
            by the policy's classifier
    """
    if policy is None:
        policy = RetryPolicy()
    classify = policy.classify or retry_always
    cursor = _DelayCursor(policy.delays)
    verdict = _Verdict()
    name = getattr(operation, "__qualname__", repr(operation))

    def _should_retry(state: RetryCallState) -> bool:
        if state.outcome is None or not state.outcome.failed:
            return False
        error = state.outcome.exception()
        if not isinstance(error, Exception):
            return False
        keep_going, effective = classify(state, error)
        verdict.attempt = state.attempt_number
        verdict.error, verdict.effective = error, effective
        return bool(keep_going)

    def _schedule_exhausted(state: RetryCallState) -> bool:
        return cursor.delay_for(state.attempt_number) is None

    def _next_delay(state: RetryCallState) -> float:
        delay = cursor.delay_for(state.attempt_number)
        return 0.0 if delay is None else delay

    retrying = Retrying(
        retry=_should_retry,
        stop=_schedule_exhausted,
        wait=_next_delay,
        sleep=policy.sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    try:
        return retrying(operation, *args, **kwargs)
    except Exception as exc:
        if exc is not verdict.error:
            raise
        logger.debug(f"{name} failed after {verdict.attempt} attempt(s): {exc}")
        effective = verdict.effective
        if effective is None or effective is exc:
            raise
        raise effective from exc


def retry(
    operation: Optional[Callable[..., T]] = None,
    *,
    delays: Optional[Iterable[float]] = None,
    classify: Optional[Classifier] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> Any:
    """Wrap ``operation`` so that every call runs through :func:`execute`.

    Usable directly (``retry(fetch)(url)``) or as a decorator
    (``@retry(delays=BackoffSpec(count=3))``). Every call walks ``delays``
    from the start, so it must be re-iterable (a BackoffSpec or a list).

    Raises:
        TypeError: If ``delays`` is a one-shot iterator
    """
    options: dict = {"classify": classify}
    if delays is not None:
        if iter(delays) is delays:
            raise TypeError("retry() needs a re-iterable schedule, not an iterator")
        options["delays"] = delays
    if sleep is not None:
        options["sleep"] = sleep
    policy = RetryPolicy(**options)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapped(*args: Any, **kwargs: Any) -> T:
            return execute(func, policy, *args, **kwargs)

        return wrapped

    if operation is not None:
        return decorator(operation)
    return decorator
