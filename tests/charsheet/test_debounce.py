"""Tests for the single-slot debouncer and schedulers."""

import asyncio

from charsheet.debounce import Debouncer, LoopScheduler, ManualScheduler


class TestManualScheduler:

    def test_runs_when_due(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(1.0, lambda: calls.append(scheduler.now))

        scheduler.advance(0.5)
        assert calls == []
        scheduler.advance(0.5)
        assert calls == [1.0]

    def test_cancelled_handle_does_not_run(self):
        scheduler = ManualScheduler()
        calls = []
        handle = scheduler.call_later(1.0, lambda: calls.append(1))
        handle.cancel()

        scheduler.run_all()

        assert calls == []
        assert scheduler.pending == 0


class TestDebouncer:

    def test_burst_runs_last_callback_once(self):
        scheduler = ManualScheduler()
        debouncer = Debouncer(0.5, scheduler)
        calls = []

        for i in range(3):
            debouncer.schedule(lambda i=i: calls.append(i))
            scheduler.advance(0.2)

        assert calls == []
        scheduler.advance(0.5)
        assert calls == [2]
        assert not debouncer.pending

    def test_delay_restarts_on_each_schedule(self):
        scheduler = ManualScheduler()
        debouncer = Debouncer(0.5, scheduler)
        calls = []

        debouncer.schedule(lambda: calls.append("a"))
        scheduler.advance(0.4)
        debouncer.schedule(lambda: calls.append("b"))
        scheduler.advance(0.4)

        assert calls == []
        scheduler.advance(0.1)
        assert calls == ["b"]

    def test_flush_runs_immediately(self):
        scheduler = ManualScheduler()
        debouncer = Debouncer(0.5, scheduler)
        calls = []

        debouncer.schedule(lambda: calls.append(1))
        debouncer.flush()
        scheduler.run_all()

        assert calls == [1]

    def test_flush_with_nothing_pending(self):
        debouncer = Debouncer(0.5, ManualScheduler())
        debouncer.flush()
        assert not debouncer.pending

    def test_cancel(self):
        scheduler = ManualScheduler()
        debouncer = Debouncer(0.5, scheduler)
        calls = []

        debouncer.schedule(lambda: calls.append(1))
        debouncer.cancel()
        scheduler.run_all()

        assert calls == []


class TestLoopScheduler:

    def test_debounces_on_running_loop(self):
        calls = []

        async def run():
            debouncer = Debouncer(0.01, LoopScheduler())
            for i in range(3):
                debouncer.schedule(lambda i=i: calls.append(i))
            await asyncio.sleep(0.05)

        asyncio.run(run())

        assert calls == [2]
