"""Bounded exponential-backoff retry for re-enterable async operations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import getLogger

from enrollcheck.domain.errors import is_retryable

log = getLogger(__name__)

type Sleep = Callable[[float], Awaitable[None]]
type RetryPredicate = Callable[[BaseException], bool]


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    max_attempts: int = 5
    initial_delay_seconds: float = 1.0
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay_seconds < 0 or self.backoff_factor < 1:
            raise ValueError("delays must be non-negative and non-shrinking")

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.initial_delay_seconds * self.backoff_factor ** (attempt - 1)

    def schedule(self) -> tuple[float, ...]:
        return tuple(self.delay_after(n) for n in range(1, self.max_attempts + 1))


@dataclass(slots=True)
class RetryOutcome[T]:
    value: T
    attempts: int


async def retry_async[T](
    operation: Callable[[], Awaitable[T]],
    *,
    policy: BackoffPolicy,
    sleep: Sleep = asyncio.sleep,
    should_retry: RetryPredicate = is_retryable,
    label: str = "operation",
) -> RetryOutcome[T]:
    """Run ``operation`` until it succeeds or ``policy.max_attempts`` are used up.

    Every failed retryable attempt, the last one included, is followed by its backoff
    delay; the last error is then re-raised. Non-retryable errors propagate at once.
    """

    last_error: BaseException | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            value = await operation()
        except Exception as exc:
            if not should_retry(exc):
                log.error("%s failed with a non-retryable error on attempt %s", label, attempt)
                raise
            last_error = exc
            delay = policy.delay_after(attempt)
            log.warning(
                "%s attempt %s/%s failed (%s); sleeping %.1fs",
                label,
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            await sleep(delay)
            continue
        return RetryOutcome(value=value, attempts=attempt)

    log.error("%s gave up after %s attempts", label, policy.max_attempts)
    if last_error is None:  # pragma: no cover - loop always runs at least once
        raise RuntimeError(f"{label} did not run")
    raise last_error
