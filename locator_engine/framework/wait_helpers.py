# ================================================================================
# Wait Helpers Module
# ================================================================================
#
# Deadline-bounded polling used by the resolution API while the tree mutates
# between snapshots.
#
# Key Features:
#   - Explicit WaitConfig values (no hidden globals)
#   - Fixed poll interval by default, optional exponential backoff
#   - Cancellation through threading.Event / asyncio.Event
#   - Sync and asyncio flavours with identical timeout semantics
#   - Allure integration for step reporting
#
# Usage:
#   result = poll_until(probe, WaitConfig(timeout_ms=2000), "login button")
#   result = await AsyncWaiter(config).wait(probe, "login button")
#
# ================================================================================

import asyncio
import inspect
import random
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, Type, TypeVar, Union

import allure
from loguru import logger

from .exceptions import MalformedExpression, ResolutionCancelled


T = TypeVar('T')

Probe = Callable[[], Tuple[bool, T]]


@dataclass(frozen=True)
class WaitConfig:
    """
    Configuration for wait operations.

    Attributes:
        timeout_ms: Total time budget; 0 means a single attempt
        poll_interval_ms: Delay between attempts
        backoff_multiplier: Interval growth per attempt (1.0 keeps it fixed)
        max_poll_interval_ms: Upper bound for the grown interval
        jitter: Add +/- 25% random jitter to grown intervals
    """
    timeout_ms: float = 0
    poll_interval_ms: float = 500
    backoff_multiplier: float = 1.0
    max_poll_interval_ms: Optional[float] = None
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {self.timeout_ms}")
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be > 0, got {self.poll_interval_ms}")
        if self.backoff_multiplier < 1.0:
            raise ValueError(f"backoff_multiplier must be >= 1.0, got {self.backoff_multiplier}")

    def with_timeout(self, timeout_ms: float) -> "WaitConfig":
        return replace(self, timeout_ms=timeout_ms)

    @classmethod
    def from_config(cls, config: Any, scenario: Optional[str] = None) -> "WaitConfig":
        """
        Build a WaitConfig from a ConfigLoader-like object.

        Reads ``wait.*`` and, when given, overlays ``wait.scenarios.<scenario>.*``.
        """
        base = get_wait_config(scenario) if scenario else cls()
        prefix = f"wait.scenarios.{scenario}" if scenario else "wait"

        def read(key: str, default: Any) -> Any:
            value = config.get(f"{prefix}.{key}", None)
            if value is None and scenario:
                value = config.get(f"wait.{key}", None)
            return default if value is None else value

        max_interval = read("max_poll_interval_ms", base.max_poll_interval_ms)
        jitter = read("jitter", base.jitter)
        if isinstance(jitter, str):
            jitter = jitter.lower() in ("true", "1", "yes", "on")

        return cls(
            timeout_ms=float(read("timeout_ms", base.timeout_ms)),
            poll_interval_ms=float(read("poll_interval_ms", base.poll_interval_ms)),
            backoff_multiplier=float(read("backoff_multiplier", base.backoff_multiplier)),
            max_poll_interval_ms=float(max_interval) if max_interval is not None else None,
            jitter=bool(jitter),
        )


# Pre-configured wait strategies for common scenarios
WAIT_SCENARIOS: Dict[str, WaitConfig] = {
    # Single attempt, no waiting
    "default": WaitConfig(),
    "instant": WaitConfig(timeout_ms=0),

    # Elements expected almost immediately (client-side rendering)
    "fast": WaitConfig(timeout_ms=2_000, poll_interval_ms=100),

    # Full page transitions
    "page_load": WaitConfig(
        timeout_ms=30_000,
        poll_interval_ms=500,
        backoff_multiplier=1.5,
        max_poll_interval_ms=2_000,
    ),

    # CSS transitions / modals sliding in
    "animation": WaitConfig(timeout_ms=5_000, poll_interval_ms=50),
}


def get_wait_config(scenario: str) -> WaitConfig:
    """
    Get wait configuration for a specific scenario.

    Args:
        scenario: Scenario name (e.g., "fast", "page_load")

    Returns:
        WaitConfig for the scenario, or default if not found
    """
    return WAIT_SCENARIOS.get(scenario, WAIT_SCENARIOS["default"])


def calculate_next_interval(current_interval_ms: float, config: WaitConfig) -> float:
    """
    Calculate the next poll interval with optional backoff and jitter.

    Args:
        current_interval_ms: Current interval in milliseconds
        config: Wait configuration

    Returns:
        Next interval in milliseconds
    """
    if config.backoff_multiplier == 1.0:
        return current_interval_ms

    next_interval = current_interval_ms * config.backoff_multiplier
    if config.max_poll_interval_ms is not None:
        next_interval = min(next_interval, config.max_poll_interval_ms)

    if config.jitter:
        jitter_factor = 0.75 + (random.random() * 0.5)
        next_interval = next_interval * jitter_factor

    return next_interval


@dataclass
class PollResult(Generic[T]):
    """
    Outcome of a polling loop.

    Attributes:
        satisfied: Whether the probe reported success before the deadline
        value: Value returned by the last completed probe call
        attempts: Number of probe calls made
        elapsed_ms: Wall time spent in the loop
    """
    satisfied: bool
    value: Optional[T]
    attempts: int
    elapsed_ms: float


class _PollState:
    """Bookkeeping shared by the sync and async loops."""

    def __init__(
        self,
        config: WaitConfig,
        description: str,
        retry_on: Tuple[Type[BaseException], ...],
        clock: Callable[[], float],
    ) -> None:
        self.config = config
        self.description = description
        self.retry_on = retry_on
        self.clock = clock
        self.start = clock()
        self.deadline = self.start + config.timeout_ms / 1000.0
        self.interval_ms = config.poll_interval_ms
        self.attempts = 0
        self.last_value: Any = None
        self.last_error: Optional[BaseException] = None

    @property
    def elapsed_ms(self) -> float:
        return (self.clock() - self.start) * 1000.0

    def record(self, success: bool, value: Any) -> bool:
        self.attempts += 1
        self.last_error = None
        self.last_value = value
        return success

    def record_error(self, error: BaseException) -> None:
        self.attempts += 1
        self.last_error = error
        logger.warning(f"Attempt {self.attempts} failed with error: {error}")

    def next_delay(self) -> Optional[float]:
        """Seconds to sleep before the next attempt, or None when the deadline passed."""
        remaining = self.deadline - self.clock()
        if remaining <= 0:
            return None
        delay = min(self.interval_ms / 1000.0, remaining)
        logger.debug(
            f"Attempt {self.attempts}: condition not met for {self.description}. "
            f"Waiting {delay * 1000:.0f}ms..."
        )
        self.interval_ms = calculate_next_interval(self.interval_ms, self.config)
        return delay

    def cancelled(self) -> ResolutionCancelled:
        logger.info(f"Wait cancelled after {self.attempts} attempts: {self.description}")
        return ResolutionCancelled(
            "Wait cancelled",
            attempts=self.attempts,
            query=self.description,
            elapsed_ms=self.elapsed_ms,
        )

    def finish(self, satisfied: bool) -> PollResult:
        if satisfied:
            logger.debug(
                f"Wait successful after {self.attempts} attempts "
                f"({self.elapsed_ms:.0f}ms): {self.description}"
            )
        elif self.last_error is not None:
            raise self.last_error
        else:
            logger.info(
                f"Wait gave up after {self.attempts} attempts "
                f"({self.elapsed_ms:.0f}ms): {self.description}"
            )
        return PollResult(
            satisfied=satisfied,
            value=self.last_value,
            attempts=self.attempts,
            elapsed_ms=self.elapsed_ms,
        )


@allure.step("Polling: {description}")
def poll_until(
    probe: Probe,
    config: WaitConfig,
    description: str = "Waiting for condition",
    cancel_event: Optional[threading.Event] = None,
    retry_on: Tuple[Type[BaseException], ...] = (MalformedExpression,),
    clock: Callable[[], float] = time.monotonic,
) -> PollResult:
    """
    Call ``probe`` until it reports success or the deadline elapses.

    With ``timeout_ms == 0`` the probe runs exactly once and nothing sleeps.
    Errors listed in ``retry_on`` are retried on the next poll and re-raised
    if the final poll still fails with them; anything else propagates at once.

    Args:
        probe: Function returning (success, value)
        config: Explicit wait configuration
        description: Human-readable description for logging
        cancel_event: Setting it stops the loop before the next poll
        retry_on: Exception types treated as transient
        clock: Monotonic clock in seconds

    Returns:
        PollResult describing the final attempt

    Raises:
        ResolutionCancelled: ``cancel_event`` was set
    """
    state = _PollState(config, description, retry_on, clock)

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise state.cancelled()

        try:
            success, value = probe()
        except retry_on as e:
            state.record_error(e)
        else:
            if state.record(success, value):
                return state.finish(True)

        delay = state.next_delay()
        if delay is None:
            return state.finish(False)

        if cancel_event is not None:
            if cancel_event.wait(delay):
                raise state.cancelled()
        else:
            time.sleep(delay)


async def async_poll_until(
    probe: Callable[[], Union[Tuple[bool, T], Awaitable[Tuple[bool, T]]]],
    config: WaitConfig,
    description: str = "Waiting for condition",
    cancel_event: Optional[asyncio.Event] = None,
    retry_on: Tuple[Type[BaseException], ...] = (MalformedExpression,),
    clock: Callable[[], float] = time.monotonic,
) -> PollResult:
    """
    Asyncio twin of ``poll_until``; yields to the event loop between polls.

    ``probe`` may be a plain function or a coroutine function.
    """
    state = _PollState(config, description, retry_on, clock)

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise state.cancelled()

        try:
            outcome = probe()
            # Support both sync and async check functions
            if inspect.isawaitable(outcome):
                outcome = await outcome
            success, value = outcome
        except retry_on as e:
            state.record_error(e)
        else:
            if state.record(success, value):
                return state.finish(True)

        delay = state.next_delay()
        if delay is None:
            return state.finish(False)

        if cancel_event is not None:
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue
            raise state.cancelled()
        await asyncio.sleep(delay)


class AsyncWaiter:
    """
    Async-compatible waiter for concurrent test scenarios.

    Holds a default configuration; every ``wait`` call owns its own deadline.
    """

    def __init__(self, config: Optional[WaitConfig] = None):
        self.config = config or WaitConfig()

    async def wait(
        self,
        check_fn: Callable[[], Union[Tuple[bool, T], Awaitable[Tuple[bool, T]]]],
        description: str = "Waiting for condition",
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PollResult:
        """
        Async wait for a condition.

        Args:
            check_fn: Async or sync function that returns (success, result)
            description: Description for logging
            cancel_event: Optional cancellation signal

        Returns:
            PollResult of the loop
        """
        return await async_poll_until(check_fn, self.config, description, cancel_event)


__all__ = [
    "WaitConfig",
    "WAIT_SCENARIOS",
    "get_wait_config",
    "calculate_next_interval",
    "PollResult",
    "poll_until",
    "async_poll_until",
    "AsyncWaiter",
]
