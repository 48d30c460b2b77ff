"""Retry and backoff helpers for qrsync remote calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryDirective:
    """Instruction returned from ``classify_err`` for ``with_retry``."""

    retry: bool
    delay_override_ms: int | None = None
    error: Exception | None = None


AsyncFactory = Callable[[], Awaitable[T]]
Classifier = Callable[[Exception], RetryDirective | bool]
FailureHook = Callable[[int, Exception, bool], None]


class RetryExhaustedError(RuntimeError):
    """Raised when a retryable operation failed on every allowed attempt."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(f"operation failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def linear_backoff_delays(base_ms: int, max_attempts: int) -> list[int]:
    """Return the waits in milliseconds before attempts ``2..max_attempts``.

    The wait after the n-th failed attempt is ``base_ms * n``.
    """

    base = max(0, int(base_ms))
    attempts = max(0, int(max_attempts))
    return [base * index for index in range(1, attempts)]


def _resolve_directive(result: RetryDirective | bool, error: Exception) -> RetryDirective:
    if isinstance(result, RetryDirective):
        resolved_error = result.error if result.error is not None else error
        return RetryDirective(
            retry=bool(result.retry),
            delay_override_ms=(
                max(0, int(result.delay_override_ms))
                if result.delay_override_ms is not None
                else None
            ),
            error=resolved_error,
        )
    if isinstance(result, bool):
        return RetryDirective(retry=result, error=error, delay_override_ms=None)
    msg = "classify_err must return a boolean or RetryDirective"
    raise TypeError(msg)


async def with_retry(
    async_fn: AsyncFactory[T],
    *,
    attempts: int,
    base_ms: int,
    classify_err: Classifier,
    on_failure: FailureHook | None = None,
) -> T:
    """Execute ``async_fn`` with retries and linear backoff.

    Non-retryable errors are raised immediately. When every attempt failed
    with a retryable error, :class:`RetryExhaustedError` is raised from the
    last error. Waits never shrink between attempts; a delay override from
    the classifier (for example ``Retry-After``) can only lengthen them.
    """

    max_attempts = max(1, int(attempts))
    delays = linear_backoff_delays(base_ms, max_attempts)
    previous_delay_ms = 0

    for attempt in range(1, max_attempts + 1):
        try:
            return await async_fn()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            directive = _resolve_directive(classify_err(exc), exc)
            error = directive.error if directive.error is not None else exc
            if on_failure is not None:
                on_failure(attempt, error, directive.retry)
            if not directive.retry:
                if error is exc:
                    raise
                raise error from exc
            if attempt >= max_attempts:
                raise RetryExhaustedError(max_attempts, error) from exc

            delay_ms = delays[attempt - 1]
            if directive.delay_override_ms is not None:
                delay_ms = max(delay_ms, directive.delay_override_ms)
            delay_ms = max(delay_ms, previous_delay_ms)
            previous_delay_ms = delay_ms
            if delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000.0)
    # ``for`` loop must return or raise before reaching here.
    raise RuntimeError("Retry loop exited unexpectedly")


__all__ = [
    "RetryDirective",
    "RetryExhaustedError",
    "linear_backoff_delays",
    "with_retry",
]
