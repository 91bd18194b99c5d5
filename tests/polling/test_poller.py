"""Tests for the await-condition poller: timing bounds, outcomes, validation."""

import pytest

from cloudawait.polling import (
    ConfigurationError,
    Poller,
    PollPolicy,
    PollTimeoutError,
    Success,
    TimedOut,
    await_condition,
    require,
)


def _counting(true_on=None, raise_on=None):
    """Predicate that records calls, turns true on call *true_on*, raises on *raise_on*."""
    calls = []

    def predicate(value):
        calls.append(value)
        if raise_on is not None and len(calls) == raise_on:
            raise ConnectionError(f"check {len(calls)} failed")
        return true_on is not None and len(calls) >= true_on

    return predicate, calls


# ── Timing properties ─────────────────────────────────────────────


async def test_zero_max_wait_checks_exactly_once(clock):
    predicate, calls = _counting()
    poller = Poller(predicate, max_wait=0, period=1, clock=clock, sleep=clock.sleep)

    outcome = await poller.wait("x")

    assert isinstance(outcome, TimedOut)
    assert calls == ["x"]
    assert clock.sleeps == []


async def test_zero_max_wait_can_still_succeed(clock):
    predicate, calls = _counting(true_on=1)
    outcome = await Poller(predicate, 0, 1, clock=clock, sleep=clock.sleep).wait("x")

    assert outcome == Success("x", attempts=1, elapsed=0.0)
    assert clock.sleeps == []


@pytest.mark.parametrize("n", [1, 2, 4, 7])
async def test_success_on_nth_call_within_one_period(clock, n):
    period = 2.0
    predicate, calls = _counting(true_on=n)
    outcome = await Poller(predicate, max_wait=100, period=period, clock=clock, sleep=clock.sleep).wait("x")

    assert isinstance(outcome, Success)
    assert outcome.value == "x"
    assert outcome.attempts == n
    assert len(calls) == n
    assert (n - 1) * period <= outcome.elapsed <= (n - 1) * period + period


async def test_never_true_times_out_within_one_period_of_max_wait(clock):
    predicate, calls = _counting()
    outcome = await Poller(predicate, max_wait=10, period=3, clock=clock, sleep=clock.sleep).wait("x")

    assert isinstance(outcome, TimedOut)
    assert 10 <= outcome.elapsed < 10 + 3
    # The last sleep is clamped to the time remaining
    assert clock.sleeps == [3, 3, 3, 1]
    assert outcome.attempts == len(calls) == 5


async def test_predicate_error_propagates_without_retry(clock):
    predicate, calls = _counting(raise_on=3)
    poller = Poller(predicate, max_wait=100, period=1, clock=clock, sleep=clock.sleep)

    with pytest.raises(ConnectionError, match="check 3 failed"):
        await poller.wait("x")

    assert len(calls) == 3
    assert len(clock.sleeps) == 2


async def test_counter_scenario_succeeds_after_three_checks(clock):
    predicate, calls = _counting(true_on=3)
    outcome = await Poller(predicate, max_wait=1.0, period=0.1, clock=clock, sleep=clock.sleep).wait("x")

    assert isinstance(outcome, Success)
    assert outcome.attempts == 3
    assert outcome.elapsed == pytest.approx(0.2)


async def test_always_false_scenario_times_out_after_three_or_four_checks(clock):
    predicate, calls = _counting()
    outcome = await Poller(predicate, max_wait=0.3, period=0.1, clock=clock, sleep=clock.sleep).wait("x")

    assert isinstance(outcome, TimedOut)
    assert len(calls) in (3, 4)
    assert outcome.elapsed == pytest.approx(0.3)


async def test_real_clock_and_sleep():
    predicate, calls = _counting(true_on=3)
    outcome = await Poller(predicate, max_wait=2, period=0.01).wait("x")

    assert isinstance(outcome, Success)
    assert len(calls) == 3
    assert outcome.elapsed >= 0.02


# ── Predicate kinds and policy options ───────────────────────────


async def test_coroutine_predicate_is_awaited(clock):
    seen = []

    async def predicate(value):
        seen.append(value)
        return len(seen) == 2

    outcome = await Poller(predicate, 10, 1, clock=clock, sleep=clock.sleep).wait({"id": "abc"})

    assert isinstance(outcome, Success)
    assert outcome.value == {"id": "abc"}
    assert len(seen) == 2


async def test_initial_delay_sleeps_before_first_check(clock):
    checked_at = []

    def predicate(value):
        checked_at.append(clock.now)
        return True

    await Poller(predicate, max_wait=60, period=10, initial_delay=10, clock=clock, sleep=clock.sleep).wait("x")

    assert clock.sleeps == [10]
    assert checked_at == [10]


async def test_max_period_grows_interval_up_to_cap(clock):
    predicate, _ = _counting(true_on=6)
    await Poller(predicate, max_wait=100, period=1, max_period=3, clock=clock, sleep=clock.sleep).wait("x")

    assert clock.sleeps == [1, 1.5, 2.25, 3, 3]


async def test_poller_can_be_reused_for_another_input(clock):
    open_ports = {22}
    poller = Poller(lambda port: port in open_ports, max_wait=3, period=1, clock=clock, sleep=clock.sleep)

    assert isinstance(await poller.wait(22), Success)
    assert isinstance(await poller.wait(80), TimedOut)
    open_ports.add(80)
    assert isinstance(await poller.wait(80), Success)


async def test_await_condition_uses_policy(clock):
    predicate, calls = _counting(true_on=2)
    policy = PollPolicy(max_wait=5, period=0.5)

    outcome = await await_condition(predicate, "x", policy, clock=clock, sleep=clock.sleep)

    assert isinstance(outcome, Success)
    assert clock.sleeps == [0.5]


# ── Outcomes ──────────────────────────────────────────────────────


def test_outcome_truthiness():
    assert Success("x", attempts=1, elapsed=0.0)
    assert not TimedOut(attempts=3, elapsed=30.0)


def test_require_returns_success_value():
    assert require(Success("node-1", attempts=2, elapsed=10.0), "unused") == "node-1"


def test_require_raises_on_timeout():
    with pytest.raises(PollTimeoutError, match="Timeout on server: abc") as exc_info:
        require(TimedOut(attempts=61, elapsed=600.0), "Timeout on server: abc")
    assert isinstance(exc_info.value, TimeoutError)
    assert "61 checks" in str(exc_info.value)


# ── Policy validation ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_wait": -1, "period": 1},
        {"max_wait": 10, "period": 0},
        {"max_wait": 10, "period": -5},
        {"max_wait": 10, "period": 1, "initial_delay": -1},
        {"max_wait": 10, "period": 1, "initial_delay": 11},
        {"max_wait": 10, "period": 2, "max_period": 1},
        {"max_wait": "300", "period": 1},
        {"max_wait": None, "period": 1},
        {"max_wait": 10, "period": [5]},
        {"max_wait": 10, "period": True},
        {"max_wait": 10, "period": 1, "initial_delay": "2"},
        {"max_wait": 10, "period": 1, "max_period": "30"},
    ],
)
def test_invalid_policy_raises_configuration_error(kwargs):
    with pytest.raises(ConfigurationError):
        PollPolicy(**kwargs)


def test_poller_validates_on_construction():
    with pytest.raises(ConfigurationError, match="period must be > 0"):
        Poller(lambda v: True, max_wait=10, period=0)


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_policy_is_immutable():
    policy = PollPolicy(max_wait=10, period=1)
    with pytest.raises(AttributeError):
        policy.period = 2


def test_non_numeric_value_names_the_field():
    with pytest.raises(ConfigurationError, match="max_wait must be a number, got '300'"):
        PollPolicy(max_wait="300", period=1)


def test_max_period_none_is_accepted():
    assert PollPolicy(max_wait=10, period=1, max_period=None).max_period is None
