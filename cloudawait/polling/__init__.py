"""Await-condition polling: poller, outcomes, and cloud predicates."""

from cloudawait.polling.poller import (
    ConfigurationError,
    Poller,
    PollPolicy,
    PollTimeoutError,
    Success,
    TimedOut,
    await_condition,
    require,
)

__all__ = [
    "ConfigurationError",
    "Poller",
    "PollPolicy",
    "PollTimeoutError",
    "Success",
    "TimedOut",
    "await_condition",
    "require",
]
