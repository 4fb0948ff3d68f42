"""Resilience patterns for API clients (exponential backoff, retries, login rate limiting)."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pytranehome.const import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_JITTER,
    LOGIN_ATTEMPT_WINDOW_SECONDS,
    MAX_LOGIN_ATTEMPTS,
    MAX_RETRY_DELAY,
)
from pytranehome.exceptions import RateLimitError, TraneError


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pytranehome.models import SessionState

_LOGGER = logging.getLogger(__name__)


@dataclass
class ExponentialBackoffConfig:
    """Configuration for exponential backoff pattern.

    Attributes:
        base_delay: Initial delay in seconds (default 1.0).
        max_delay: Maximum delay in seconds (default 30.0).
        max_retries: Retries after the first attempt (default 3).
        exponential_base: Multiplier for exponential growth (default 2.0).
        jitter: Upper bound in seconds of the random spread added to each delay.
    """

    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    max_delay: float = MAX_RETRY_DELAY
    max_retries: int = DEFAULT_RETRY_ATTEMPTS
    exponential_base: float = 2.0
    jitter: float = DEFAULT_RETRY_JITTER


@dataclass
class LoginRateLimitConfig:
    """Configuration for the local sign-in limiter.

    Attributes:
        max_attempts: Sign-in attempts allowed per window.
        window_seconds: Length of the window in seconds.
    """

    max_attempts: int = MAX_LOGIN_ATTEMPTS
    window_seconds: float = LOGIN_ATTEMPT_WINDOW_SECONDS


class ExponentialBackoff:
    """Exponential backoff calculator for retry delays.

    The delay for retry ``n`` is ``base_delay * exponential_base**n`` plus a
    random jitter, capped at ``max_delay``.

    Example:
        backoff = ExponentialBackoff(base_delay=1.0, max_retries=3)

        for attempt in range(backoff.max_retries + 1):
            try:
                return await make_request()
            except HttpServerError:
                if attempt == backoff.max_retries:
                    raise
                await asyncio.sleep(backoff.calculate_delay(attempt))
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        max_delay: float = MAX_RETRY_DELAY,
        max_retries: int = DEFAULT_RETRY_ATTEMPTS,
        exponential_base: float = 2.0,
        *,
        jitter: float = DEFAULT_RETRY_JITTER,
    ) -> None:
        """Initialize exponential backoff calculator.

        Args:
            base_delay: Initial delay in seconds.
            max_delay: Maximum delay in seconds.
            max_retries: Number of retries after the first attempt.
            exponential_base: Multiplier for exponential growth.
            jitter: Maximum random seconds added to each delay (0 disables).
        """
        self.config = ExponentialBackoffConfig(
            base_delay=base_delay,
            max_delay=max_delay,
            max_retries=max_retries,
            exponential_base=exponential_base,
            jitter=jitter,
        )

    @property
    def max_retries(self) -> int:
        """Get maximum number of retries."""
        return self.config.max_retries

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for a given retry attempt.

        Args:
            attempt: Retry attempt number (0-indexed).

        Returns:
            Delay in seconds for this attempt.
        """
        delay = self.config.base_delay * (self.config.exponential_base**attempt)

        if self.config.jitter > 0:
            delay += random.uniform(0, self.config.jitter)  # noqa: S311

        return min(delay, self.config.max_delay)


class LoginRateLimiter:
    """Local guard against vendor account lockout.

    Counts sign-in attempts in a rolling window anchored at the most recent
    attempt. Once the count reaches ``max_attempts`` further attempts are
    refused until the window has elapsed, without touching the network.

    The counters live on the persisted :class:`SessionState` so that the limit
    survives process restarts.
    """

    def __init__(
        self,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        window_seconds: float = LOGIN_ATTEMPT_WINDOW_SECONDS,
    ) -> None:
        """Initialize login rate limiter.

        Args:
            max_attempts: Sign-in attempts allowed per window.
            window_seconds: Length of the window in seconds.
        """
        self.config = LoginRateLimitConfig(max_attempts=max_attempts, window_seconds=window_seconds)

    def remaining_wait(self, state: SessionState, now: datetime | None = None) -> float:
        """Seconds until the window anchored at the last attempt closes."""
        if state.last_login_attempt is None:
            return 0.0
        now = now or datetime.now(UTC)
        elapsed = (now - state.last_login_attempt).total_seconds()
        return max(0.0, self.config.window_seconds - elapsed)

    def check(self, state: SessionState, now: datetime | None = None) -> None:
        """Verify a sign-in attempt is allowed, resetting an expired window.

        Args:
            state: Persisted session state holding the counters.
            now: Current time (defaults to now, UTC).

        Raises:
            RateLimitError: If the attempt budget for the window is exhausted.
        """
        remaining = self.remaining_wait(state, now)
        if remaining <= 0:
            state.login_attempts = 0
            return

        if state.login_attempts >= self.config.max_attempts:
            minutes = math.ceil(remaining / 60)
            msg = f"Too many login attempts. Try again in {minutes} minutes."
            raise RateLimitError(msg, retry_after=math.ceil(remaining))

    def record_failure(self, state: SessionState, now: datetime | None = None) -> None:
        """Count a failed sign-in attempt."""
        state.login_attempts += 1
        state.last_login_attempt = now or datetime.now(UTC)

    def record_success(self, state: SessionState, now: datetime | None = None) -> None:
        """Reset the counter after a successful sign-in."""
        state.login_attempts = 0
        state.last_login_attempt = now or datetime.now(UTC)


def is_retryable(exc: BaseException) -> bool:
    """Return True for network failures, timeouts and server errors."""
    return isinstance(exc, TraneError) and exc.retryable


async def retry_with_backoff(
    func: Callable[[], Awaitable[Any]],
    *,
    backoff: ExponentialBackoff | None = None,
    should_retry: Callable[[BaseException], bool] = is_retryable,
) -> Any:
    """Execute function with retry and exponential backoff.

    Only failures accepted by ``should_retry`` are repeated; anything else is
    raised immediately. The last failure is re-raised once retries are
    exhausted.

    Args:
        func: Async function to execute.
        backoff: Optional exponential backoff instance.
        should_retry: Predicate deciding whether a failure is transient.

    Returns:
        Result from func() if successful.

    Raises:
        TraneError: The last failure if all retries are exhausted, or the first
            non-retryable failure.
    """
    if backoff is None:
        backoff = ExponentialBackoff()

    attempts = backoff.max_retries + 1
    for attempt in range(attempts):
        try:
            return await func()
        except TraneError as exc:
            if not should_retry(exc) or attempt == attempts - 1:
                raise

            delay = backoff.calculate_delay(attempt)
            _LOGGER.warning(
                "Attempt %d/%d failed: %s. Retrying in %.1f seconds",
                attempt + 1,
                attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)

    msg = "Unexpected state: no result and no exception"
    raise RuntimeError(msg)
