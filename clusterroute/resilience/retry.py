"""Tenacity-backed retry wrapper for session establishment.

Only the connect step of a bootstrap is retried (`clusterroute.session.mysql`).
Statements issued after the session is open run exactly once.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps

from tenacity import (
    RetryCallState,
    Retrying,
    after_nothing,
    before_nothing,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.retry import retry_base

from ..config.retry import RetryConfig
from ..core.types import P, R
from ..logger import get_logger

logger = get_logger(__name__)

type RetryCallback = Callable[[RetryCallState], None]


class RetryLogicError(RuntimeError): ...


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """`before_sleep` hook that logs the failed attempt and the upcoming wait."""
    outcome = retry_state.outcome
    error = outcome.exception() if outcome is not None else None
    logger.warning(
        "retrying",
        callable=getattr(retry_state.fn, "__qualname__", repr(retry_state.fn)),
        attempt=retry_state.attempt_number,
        wait_seconds=round(retry_state.next_action.sleep, 3) if retry_state.next_action else 0.0,
        error=str(error) if error is not None else None,
    )


class Retry:
    """Decorator retrying a blocking call under a `RetryConfig` policy.

    Waits follow full-jitter exponential backoff between ``wait_min`` and
    ``wait_max``.
    """

    __slots__ = ("_after", "_before", "_before_sleep", "_config", "_retry_condition", "_stop", "_wait")

    def __init__(
        self,
        config: RetryConfig,
        before: RetryCallback | None = None,
        after: RetryCallback | None = None,
        before_sleep: RetryCallback | None = None,
    ) -> None:
        self._config = config
        self._before = before or before_nothing
        self._after = after or after_nothing
        self._before_sleep = before_sleep
        self._stop = stop_after_attempt(config.max_attempts)
        self._wait = wait_random_exponential(
            multiplier=config.multiplier,
            min=config.wait_min,
            max=config.wait_max,
            exp_base=config.exp_base,
        )
        self._retry_condition = self._build_retry_condition(config)

    @staticmethod
    def _build_retry_condition(config: RetryConfig) -> retry_base:
        condition: retry_base = retry_if_exception_type(config.retry_on_exceptions or Exception)
        if config.never_retry_on:
            condition = condition & retry_if_not_exception_type(config.never_retry_on)
        return condition

    def __call__(self, func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            for attempt in Retrying(
                stop=self._stop,
                wait=self._wait,
                retry=self._retry_condition,
                before=self._before,
                after=self._after,
                before_sleep=self._before_sleep,
                reraise=self._config.reraise,
            ):
                with attempt:
                    return func(*args, **kwargs)

            raise RetryLogicError("Retry loop completed without success or failure")

        return wrapper


def retry(
    config: RetryConfig | None = None,
    before: RetryCallback | None = None,
    after: RetryCallback | None = None,
    before_sleep: RetryCallback | None = log_retry_attempt,
) -> Retry:
    return Retry(config or RetryConfig(), before, after, before_sleep)
