#!/usr/bin/env python3
"""
Unit tests for the run Scheduler.

Covers the state machine transitions and the deadline/breach bounded loop,
mostly on a fake clock. One test runs on the real monotonic clock.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from soakrunner.core import EnvLifecycleError, Eventer, Gatherer, Reporter, Scheduler
from soakrunner.models import MetricDefinition, RunState, StopReason
from tests.fakes import FakeClock, FakeEnv, FakeEventer, FakeSource, SlowEventer

pytestmark = pytest.mark.asyncio


def _make_scheduler(
    *,
    eventer=None,
    env=None,
    clock=None,
    start_delay: float = 0.0,
    test_duration: float = 10.0,
    interval: float = 1.0,
) -> Scheduler:
    clock = clock or FakeClock()
    return Scheduler(
        env_manager=env or FakeEnv(),
        eventer=eventer or FakeEventer(),
        start_delay=start_delay,
        test_duration=test_duration,
        interval=interval,
        clock=clock,
        sleep=clock.sleep,
    )


def _wire(value: float, ceiling: float, **kwargs):
    """Real gatherer/eventer/reporter around a source returning a fixed value."""
    metric = MetricDefinition(name="latency", query="q_latency", ceiling=ceiling)
    source = FakeSource({"q_latency": value})
    reporter = Reporter()
    eventer = Eventer(gatherer=Gatherer([metric], source), reporter=reporter)
    scheduler = _make_scheduler(eventer=eventer, **kwargs)
    eventer.stopper = scheduler.request_stop
    return scheduler, reporter, source


async def test_init_starts_environment():
    env = FakeEnv()
    scheduler = _make_scheduler(env=env)
    assert scheduler.state == RunState.NOT_STARTED

    await scheduler.init()

    assert env.started == 1
    assert scheduler.state == RunState.RUNNING


async def test_init_failure_keeps_not_started():
    env = FakeEnv(fail_start=True)
    scheduler = _make_scheduler(env=env)

    with pytest.raises(EnvLifecycleError):
        await scheduler.init()

    assert scheduler.state == RunState.NOT_STARTED
    assert env.stopped == 0


async def test_init_twice_rejected():
    scheduler = _make_scheduler()
    await scheduler.init()
    with pytest.raises(RuntimeError):
        await scheduler.init()


async def test_request_stop_is_idempotent():
    scheduler = _make_scheduler()
    await scheduler.init()

    assert scheduler.request_stop() is True
    assert scheduler.state == RunState.STOP_REQUESTED
    for _ in range(5):
        assert scheduler.request_stop() is False
    assert scheduler.state == RunState.STOP_REQUESTED


async def test_request_stop_before_init_is_noop():
    scheduler = _make_scheduler()
    assert scheduler.request_stop() is False
    assert scheduler.state == RunState.NOT_STARTED


async def test_tick_fires_only_while_running():
    eventer = FakeEventer()
    scheduler = _make_scheduler(eventer=eventer)

    await scheduler.tick()
    assert eventer.fired == []

    await scheduler.init()
    await scheduler.tick()
    assert len(eventer.fired) == 1

    scheduler.request_stop()
    await scheduler.tick()
    assert len(eventer.fired) == 1


async def test_tick_when_stopped_records_nothing():
    scheduler, reporter, source = _wire(50, ceiling=100)
    await scheduler.init()
    await scheduler.down()

    await scheduler.tick()

    assert source.calls == []
    assert len(reporter) == 0


async def test_run_before_init_raises():
    scheduler = _make_scheduler()
    with pytest.raises(RuntimeError):
        await scheduler.run()


async def test_zero_duration_yields_no_ticks():
    scheduler, reporter, source = _wire(50, ceiling=100, test_duration=0)
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.DEADLINE
    assert len(reporter) == 0
    assert source.calls == []
    assert scheduler.state == RunState.STOPPED


@pytest.mark.parametrize(
    "duration,interval,expected",
    [(3, 1, 3), (10, 1, 10), (10, 3, 3), (0.5, 1, 0), (2.5, 0.5, 5)],
)
async def test_tick_count_is_floor_of_duration_over_interval(duration, interval, expected):
    eventer = FakeEventer()
    scheduler = _make_scheduler(
        eventer=eventer, test_duration=duration, interval=interval
    )
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.DEADLINE
    assert len(eventer.fired) == expected
    assert scheduler.ticks == expected


@pytest.mark.parametrize(
    "duration,interval,expected",
    [(3, 1, 3), (10, 3, 3), (2.5, 0.5, 5), (0.3, 0.1, 3)],
)
async def test_tick_latency_does_not_cost_a_slot(duration, interval, expected):
    clock = FakeClock()
    eventer = SlowEventer(clock, cost=0.05)
    scheduler = _make_scheduler(
        eventer=eventer, clock=clock, test_duration=duration, interval=interval
    )
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.DEADLINE
    assert len(eventer.fired) == expected
    assert clock.now <= duration + 1e-9


async def test_ticks_slower_than_interval_stop_at_deadline():
    clock = FakeClock()
    eventer = SlowEventer(clock, cost=1.5)
    scheduler = _make_scheduler(
        eventer=eventer, clock=clock, test_duration=3, interval=1
    )
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.DEADLINE
    # Overrunning ticks start their next slot without sleeping.
    assert clock.sleeps == [0.0, 0.0]
    assert len(eventer.fired) == 2


async def test_real_clock_run_records_every_slot():
    metric = MetricDefinition(name="q", query="q", ceiling=100)
    reporter = Reporter()
    eventer = Eventer(
        gatherer=Gatherer([metric], FakeSource({"q": 50})), reporter=reporter
    )
    scheduler = Scheduler(
        env_manager=FakeEnv(),
        eventer=eventer,
        start_delay=0,
        test_duration=0.3,
        interval=0.1,
    )
    eventer.stopper = scheduler.request_stop
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.DEADLINE
    assert len(reporter) == 3
    assert scheduler.ticks == 3


async def test_passing_run_ends_by_deadline():
    scheduler, reporter, _ = _wire(50, ceiling=100, test_duration=3, interval=1)
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.DEADLINE
    assert len(reporter) == 3
    assert all(batch.within_ceiling for batch in reporter.batches)
    assert [r.value for b in reporter.batches for r in b.readings] == [50, 50, 50]


async def test_breach_stops_after_first_tick():
    clock = FakeClock()
    scheduler, reporter, source = _wire(
        150, ceiling=100, test_duration=10, interval=1, clock=clock
    )
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.BREACH
    assert len(reporter) == 1
    reading = reporter.batches[0].readings[0]
    assert (reading.name, reading.value) == ("latency", 150)
    assert not reporter.batches[0].within_ceiling
    assert len(source.calls) == 1
    # Loop exits well before the deadline.
    assert clock.now < 10
    assert scheduler.state == RunState.STOPPED


async def test_start_delay_not_counted_against_duration():
    clock = FakeClock()
    eventer = FakeEventer()
    scheduler = _make_scheduler(
        eventer=eventer, clock=clock, start_delay=5, test_duration=3, interval=1
    )
    await scheduler.init()

    await scheduler.run()

    assert clock.sleeps[0] == 5
    assert len(eventer.fired) == 3


async def test_deadline_blocks_tick_even_with_pending_stop():
    clock = FakeClock()
    scheduler = _make_scheduler(clock=clock, test_duration=2, interval=1)

    async def fire_and_overrun(now):
        clock.now += 5
        scheduler.request_stop()

    eventer = FakeEventer()
    eventer.fire = fire_and_overrun
    scheduler.eventer = eventer
    await scheduler.init()

    reason = await scheduler.run()

    assert reason == StopReason.BREACH
    assert scheduler.ticks == 1


async def test_down_is_called_once():
    env = FakeEnv()
    scheduler = _make_scheduler(env=env)
    await scheduler.init()
    await scheduler.run()

    await scheduler.down()
    await scheduler.down()

    assert env.stopped == 1
    assert scheduler.state == RunState.STOPPED


async def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        _make_scheduler(interval=0)


@pytest.mark.parametrize("field", ["start_delay", "test_duration"])
async def test_negative_durations_rejected(field):
    with pytest.raises(ValueError, match=field):
        _make_scheduler(**{field: -1})
