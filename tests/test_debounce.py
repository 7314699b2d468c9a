"""Tests for obsync.core.debounce.Debouncer."""

import asyncio

from obsync.core.debounce import Debouncer


class _Counter:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


async def test_burst_of_triggers_fires_once():
    counter = _Counter()
    debouncer = Debouncer(0.05, counter)

    for _ in range(5):
        debouncer.trigger()
        await asyncio.sleep(0.01)

    assert debouncer.pending
    assert counter.calls == 0
    await asyncio.sleep(0.1)
    assert counter.calls == 1
    assert not debouncer.pending


async def test_each_trigger_restarts_quiet_period():
    counter = _Counter()
    debouncer = Debouncer(0.05, counter)

    debouncer.trigger()
    await asyncio.sleep(0.03)
    debouncer.trigger()
    await asyncio.sleep(0.03)
    # 60ms after the first trigger but only 30ms after the last
    assert counter.calls == 0
    await asyncio.sleep(0.05)
    assert counter.calls == 1


async def test_cancel_drops_scheduled_call():
    counter = _Counter()
    debouncer = Debouncer(0.02, counter)
    debouncer.trigger()
    debouncer.cancel()
    await asyncio.sleep(0.05)
    assert counter.calls == 0
    assert not debouncer.pending


async def test_flush_runs_pending_call_now():
    counter = _Counter()
    debouncer = Debouncer(10, counter)
    debouncer.trigger()

    await debouncer.flush()

    assert counter.calls == 1
    assert not debouncer.pending


async def test_flush_without_pending_call_is_noop():
    counter = _Counter()
    await Debouncer(0.01, counter).flush()
    assert counter.calls == 0


async def test_failing_callback_is_logged(caplog):
    async def explode():
        raise RuntimeError("push failed")

    debouncer = Debouncer(0.01, explode)
    debouncer.trigger()
    await asyncio.sleep(0.05)

    assert "Debounced callback failed" in caplog.text
    assert not debouncer.pending


async def test_trigger_from_callback_schedules_again():
    calls = []

    async def callback():
        calls.append(len(calls))
        if len(calls) == 1:
            debouncer.trigger()

    debouncer = Debouncer(0.01, callback)
    debouncer.trigger()
    await asyncio.sleep(0.08)
    assert calls == [0, 1]


async def test_fired_task_kept_while_callback_runs():
    release = asyncio.Event()
    seen = []

    async def slow():
        seen.append(asyncio.current_task() in debouncer._running)
        await release.wait()

    debouncer = Debouncer(0.01, slow)
    debouncer.trigger()
    await asyncio.sleep(0.05)

    assert not debouncer.pending
    assert debouncer.running
    assert seen == [True]

    release.set()
    await asyncio.sleep(0.01)
    assert not debouncer.running
