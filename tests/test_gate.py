from datetime import timedelta

import pendulum

from newsagg.pipeline import RunGate, RunLock
from newsagg.pipeline.gate import LAST_RUN_KEY, LOCK_KEY


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_gate_allows_first_run(cache):
    gate = RunGate(cache, min_interval=timedelta(minutes=2))

    assert gate.last_run() is None
    assert gate.should_run()


def test_gate_refuses_runs_inside_min_interval(cache):
    clock = FixedClock(pendulum.datetime(2024, 11, 5, 10, 0, tz="UTC"))
    gate = RunGate(cache, min_interval=timedelta(minutes=2), clock=clock)

    gate.mark_started()
    assert gate.last_run() == clock.now

    clock.now = clock.now.add(seconds=119)
    assert not gate.should_run()

    clock.now = clock.now.add(seconds=1)
    assert gate.should_run()


def test_gate_ignores_unreadable_marker(cache):
    cache.put(LAST_RUN_KEY, "not a timestamp", ttl=60)

    assert RunGate(cache).should_run()


def test_gate_state_is_shared_through_the_cache(cache):
    clock = FixedClock(pendulum.datetime(2024, 11, 5, 10, 0, tz="UTC"))
    RunGate(cache, clock=clock).mark_started()

    assert not RunGate(cache, clock=clock).should_run()


def test_lock_is_exclusive_until_released(cache):
    first = RunLock(cache)
    second = RunLock(cache)

    assert first.acquire()
    assert first.held
    assert not second.acquire()

    first.release()
    assert not first.held
    assert second.acquire()


def test_lock_release_leaves_foreign_lock_alone(cache, clock):
    first = RunLock(cache, ttl=timedelta(minutes=10))
    second = RunLock(cache, ttl=timedelta(minutes=10))

    assert first.acquire()
    clock.advance(601)
    assert second.acquire()

    first.release()
    assert cache.get(LOCK_KEY) is not None
    assert not RunLock(cache).acquire()


def test_lock_expires_after_ttl(cache, clock):
    assert RunLock(cache, ttl=timedelta(minutes=10)).acquire()

    clock.advance(599)
    assert not RunLock(cache).acquire()

    clock.advance(2)
    assert RunLock(cache).acquire()
