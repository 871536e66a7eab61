import asyncio
import threading
import time

import pytest

from locator_engine.framework import wait_helpers
from locator_engine.framework.exceptions import MalformedExpression, ResolutionCancelled
from locator_engine.framework.wait_helpers import (
    AsyncWaiter,
    WaitConfig,
    async_poll_until,
    calculate_next_interval,
    get_wait_config,
    poll_until,
)


class FakeClock:
    """Monotonic clock that only moves when the loop sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(wait_helpers.time, "sleep", fake.sleep)
    return fake


def never(value=None):
    return lambda: (False, value)


def test_zero_timeout_means_single_attempt_without_sleeping(clock):
    calls = []

    def probe():
        calls.append(1)
        return False, None

    result = poll_until(probe, WaitConfig(timeout_ms=0), "instant", clock=clock)

    assert not result.satisfied
    assert result.attempts == 1
    assert calls == [1]
    assert clock.sleeps == []


def test_polls_at_fixed_interval_until_deadline(clock):
    result = poll_until(never(), WaitConfig(timeout_ms=1000, poll_interval_ms=250), "fixed", clock=clock)

    assert result.attempts == 5
    assert clock.sleeps == [0.25, 0.25, 0.25, 0.25]
    assert result.elapsed_ms == 1000


def test_last_sleep_is_clipped_to_the_deadline(clock):
    result = poll_until(never(), WaitConfig(timeout_ms=500, poll_interval_ms=375), "clip", clock=clock)

    assert clock.sleeps == [0.375, 0.125]
    assert result.attempts == 3


def test_success_returns_probe_value(clock):
    answers = iter([(False, None), (False, None), (True, "found")])
    result = poll_until(lambda: next(answers), WaitConfig(timeout_ms=5000, poll_interval_ms=100), clock=clock)

    assert result.satisfied
    assert result.value == "found"
    assert result.attempts == 3


def test_malformed_expression_is_retried_then_reraised(clock):
    answers = iter([MalformedExpression("flaky"), (True, "ok")])

    def probe():
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return answer

    result = poll_until(probe, WaitConfig(timeout_ms=1000, poll_interval_ms=100), clock=clock)
    assert result.satisfied and result.attempts == 2

    def always_broken():
        raise MalformedExpression("still broken")

    with pytest.raises(MalformedExpression, match="still broken"):
        poll_until(always_broken, WaitConfig(timeout_ms=300, poll_interval_ms=100), clock=clock)


def test_other_errors_propagate_immediately(clock):
    def probe():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        poll_until(probe, WaitConfig(timeout_ms=1000, poll_interval_ms=100), clock=clock)
    assert clock.sleeps == []


def test_backoff_growth_is_capped():
    config = WaitConfig(poll_interval_ms=100, backoff_multiplier=2.0, max_poll_interval_ms=300)
    assert calculate_next_interval(100, config) == 200
    assert calculate_next_interval(200, config) == 300
    assert calculate_next_interval(100, WaitConfig()) == 100


def test_backoff_applies_between_attempts(clock):
    config = WaitConfig(timeout_ms=1000, poll_interval_ms=125, backoff_multiplier=2.0, max_poll_interval_ms=250)
    poll_until(never(), config, clock=clock)
    assert clock.sleeps[:3] == [0.125, 0.25, 0.25]


@pytest.mark.parametrize(
    "kwargs",
    [{"timeout_ms": -1}, {"poll_interval_ms": 0}, {"backoff_multiplier": 0.5}],
)
def test_wait_config_validation(kwargs):
    with pytest.raises(ValueError):
        WaitConfig(**kwargs)


def test_named_scenarios():
    assert get_wait_config("fast") == WaitConfig(timeout_ms=2000, poll_interval_ms=100)
    assert get_wait_config("page_load").backoff_multiplier == 1.5
    assert get_wait_config("no-such-scenario") == WaitConfig()
    assert WaitConfig().with_timeout(750).timeout_ms == 750


class DictConfig:
    def __init__(self, values):
        self.values = values

    def get(self, key, default=None):
        return self.values.get(key, default)


def test_wait_config_from_config_values():
    config = DictConfig({
        "wait.timeout_ms": "4000",
        "wait.poll_interval_ms": 200,
        "wait.jitter": "false",
        "wait.scenarios.fast.timeout_ms": 1500,
    })

    assert WaitConfig.from_config(config) == WaitConfig(timeout_ms=4000, poll_interval_ms=200)
    fast = WaitConfig.from_config(config, "fast")
    assert fast.timeout_ms == 1500
    # falls back to the top-level wait section, then to the preset
    assert fast.poll_interval_ms == 200


def test_cancel_before_first_attempt():
    event = threading.Event()
    event.set()

    with pytest.raises(ResolutionCancelled) as exc_info:
        poll_until(never(), WaitConfig(timeout_ms=1000), "cancelled", cancel_event=event)
    assert exc_info.value.attempts == 0


def test_cancel_interrupts_sleep():
    event = threading.Event()
    timer = threading.Timer(0.05, event.set)
    started = time.monotonic()
    timer.start()
    try:
        with pytest.raises(ResolutionCancelled):
            poll_until(never(), WaitConfig(timeout_ms=10_000, poll_interval_ms=5_000), cancel_event=event)
    finally:
        timer.cancel()
    assert time.monotonic() - started < 2.0


@pytest.mark.asyncio
async def test_async_poll_accepts_coroutine_probes():
    answers = iter([False, False, True])

    async def probe():
        return next(answers), "async-value"

    result = await async_poll_until(probe, WaitConfig(timeout_ms=2000, poll_interval_ms=10))
    assert result.satisfied
    assert result.attempts == 3


@pytest.mark.asyncio
async def test_async_waiter_times_out_and_cancels():
    waiter = AsyncWaiter(WaitConfig(timeout_ms=30, poll_interval_ms=10))
    result = await waiter.wait(never(), "never")
    assert not result.satisfied
    assert result.attempts >= 2

    event = asyncio.Event()
    asyncio.get_running_loop().call_later(0.02, event.set)
    with pytest.raises(ResolutionCancelled):
        await AsyncWaiter(WaitConfig(timeout_ms=5000, poll_interval_ms=1000)).wait(never(), "cancel", event)
