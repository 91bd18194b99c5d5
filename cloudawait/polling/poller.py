"""Await-condition poller: re-check a predicate until it holds or time runs out.

A poller wraps one predicate and one timing policy. ``wait(value)`` evaluates
``predicate(value)`` on a fixed (or bounded back-off) interval until it
returns true or ``max_wait`` seconds have elapsed. Predicates may be plain
functions or coroutine functions.

Errors raised by the predicate are not caught here; the caller decides
whether to retry the whole wait.
"""

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")

Predicate = Callable[[T], bool | Awaitable[bool]]

BACKOFF_FACTOR = 1.5


class ConfigurationError(ValueError):
    """Invalid poll policy parameters."""


class PollTimeoutError(TimeoutError):
    """A required condition did not become true in time."""


@dataclass(frozen=True)
class PollPolicy:
    """Timing configuration for one await operation (seconds)."""

    max_wait: float
    period: float
    initial_delay: float = 0.0
    max_period: float | None = None

    def __post_init__(self):
        for name in ("max_wait", "period", "initial_delay", "max_period"):
            value = getattr(self, name)
            if name == "max_period" and value is None:
                continue
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
        if self.max_wait < 0:
            raise ConfigurationError(f"max_wait must be >= 0, got {self.max_wait}")
        if self.period <= 0:
            raise ConfigurationError(f"period must be > 0, got {self.period}")
        if self.initial_delay < 0:
            raise ConfigurationError(f"initial_delay must be >= 0, got {self.initial_delay}")
        if self.initial_delay > self.max_wait:
            raise ConfigurationError(
                f"initial_delay ({self.initial_delay}) must not exceed max_wait ({self.max_wait})"
            )
        if self.max_period is not None and self.max_period < self.period:
            raise ConfigurationError(
                f"max_period ({self.max_period}) must be >= period ({self.period})"
            )

    def intervals(self):
        """Yield successive sleep intervals, growing toward max_period."""
        interval = self.period
        ceiling = self.max_period or self.period
        while True:
            yield interval
            interval = min(interval * BACKOFF_FACTOR, ceiling)


@dataclass(frozen=True)
class Success(Generic[T]):
    """The predicate returned true for ``value``."""

    value: T
    attempts: int
    elapsed: float

    def __bool__(self):
        return True


@dataclass(frozen=True)
class TimedOut:
    """``max_wait`` elapsed without the predicate returning true."""

    attempts: int
    elapsed: float

    def __bool__(self):
        return False


class Poller(Generic[T]):
    """Evaluate a predicate repeatedly until it holds or the policy times out.

    Holds no state between ``wait()`` calls, so one instance can be reused
    for several inputs.
    """

    def __init__(
        self,
        predicate: Predicate,
        max_wait: float,
        period: float,
        initial_delay: float = 0.0,
        max_period: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.predicate = predicate
        self.policy = PollPolicy(max_wait, period, initial_delay, max_period)
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_policy(cls, predicate: Predicate, policy: PollPolicy, **kwargs) -> "Poller":
        return cls(predicate, policy.max_wait, policy.period, policy.initial_delay, policy.max_period, **kwargs)

    async def _check(self, value) -> bool:
        result = self.predicate(value)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def wait(self, value: T) -> Success[T] | TimedOut:
        """Poll ``predicate(value)`` until true or ``max_wait`` elapses.

        The predicate is always evaluated at least once, even with a
        ``max_wait`` of zero. Exceptions from the predicate propagate.

        Returns:
            Success(value) or TimedOut, both carrying attempts and elapsed seconds.
        """
        policy = self.policy
        start = self._clock()
        if policy.initial_delay > 0:
            await self._sleep(policy.initial_delay)

        attempts = 0
        intervals = policy.intervals()
        while True:
            attempts += 1
            if await self._check(value):
                return Success(value, attempts, self._clock() - start)
            elapsed = self._clock() - start
            if elapsed >= policy.max_wait:
                return TimedOut(attempts, elapsed)
            # Clamp the last sleep so the final check lands on max_wait.
            await self._sleep(min(next(intervals), policy.max_wait - elapsed))


async def await_condition(predicate: Predicate, value: T, policy: PollPolicy, **kwargs) -> Success[T] | TimedOut:
    """One-shot helper: build a Poller from *policy* and wait on *value*."""
    return await Poller.from_policy(predicate, policy, **kwargs).wait(value)


def require(outcome: Success[T] | TimedOut, message: str) -> T:
    """Return the success value, or raise PollTimeoutError(message) on timeout."""
    if isinstance(outcome, TimedOut):
        raise PollTimeoutError(f"{message} (gave up after {outcome.attempts} checks in {outcome.elapsed:.0f}s)")
    return outcome.value
