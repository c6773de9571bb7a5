import asyncio

import pytest

from portfolio_sync.utils.timeout_handler import Deadline, KeyedLocks, TimeoutConfig


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_deadline_counts_down():
    clock = FakeClock()
    deadline = Deadline(10.0, clock=clock)
    assert deadline.remaining() == 10.0
    clock.now += 4
    assert deadline.remaining() == 6.0
    assert not deadline.expired
    clock.now += 7
    assert deadline.remaining() == 0.0
    assert deadline.expired


def test_unbounded_deadline_never_expires():
    deadline = Deadline.unbounded()
    assert deadline.remaining() is None
    assert not deadline.expired


def test_service_timeouts():
    assert TimeoutConfig.get_timeout("OpenAI") == 45
    assert TimeoutConfig.get_timeout("anthropic") == 60
    assert set(TimeoutConfig.TIMEOUTS) == {"openai", "anthropic"}
    assert TimeoutConfig.get_timeout("unknown") == TimeoutConfig.DEFAULT_TIMEOUT


@pytest.mark.asyncio
async def test_keyed_locks_serialize_same_key():
    locks = KeyedLocks()
    order = []

    async def write(key, label):
        async with locks.hold(key):
            order.append(f"{label}-start")
            await asyncio.sleep(0.01)
            order.append(f"{label}-end")

    await asyncio.gather(write("acme", "a"), write("acme", "b"))
    assert order == ["a-start", "a-end", "b-start", "b-end"]


@pytest.mark.asyncio
async def test_keyed_locks_without_key_do_not_block():
    locks = KeyedLocks()
    async with locks.hold(None):
        async with locks.hold(None):
            pass
