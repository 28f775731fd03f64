"""Tests for the deferred task queue and set_scheduler()."""

import asyncio
import logging

from peeper import flush, get_pending_count, observe, set_scheduler, tick
from peeper._queue import schedule


class Person:
    def __init__(self, name):
        self.name = name


class TestQueue:
    def test_schedule_defers(self):
        log = []
        schedule(log.append, 1)
        assert log == []
        assert get_pending_count() == 1

    def test_fifo(self):
        log = []
        for i in range(5):
            schedule(log.append, i)
        assert flush() == 5
        assert log == [0, 1, 2, 3, 4]

    def test_tick_runs_one_turn(self):
        log = []

        def outer():
            log.append("outer")
            schedule(log.append, "inner")

        schedule(outer)
        assert tick() == 1
        assert log == ["outer"]
        assert get_pending_count() == 1
        assert tick() == 1
        assert log == ["outer", "inner"]

    def test_flush_drains_nested(self):
        log = []

        def outer():
            log.append("outer")
            schedule(log.append, "inner")

        schedule(outer)
        assert flush() == 2
        assert log == ["outer", "inner"]
        assert get_pending_count() == 0

    def test_flush_empty(self):
        assert flush() == 0
        assert tick() == 0

    def test_failing_task_logged(self, caplog):
        log = []

        def bad():
            raise ValueError("nope")

        schedule(bad)
        schedule(log.append, "after")

        with caplog.at_level(logging.ERROR, logger="peeper.queue"):
            flush()

        assert log == ["after"]
        assert "Deferred task" in caplog.text


class TestSetScheduler:
    def test_custom_scheduler(self):
        calls = []
        set_scheduler(lambda fn, *args: calls.append((fn, args)))
        person = Person("Brad")
        changes = []
        observe(person, changes.append)
        person.name = "Ann"

        assert get_pending_count() == 0
        assert len(calls) == 1
        fn, args = calls[0]
        fn(*args)
        assert [c.new_value for c in changes] == ["Ann"]

    def test_reset_to_builtin_queue(self):
        set_scheduler(lambda fn, *args: None)
        set_scheduler(None)
        log = []
        schedule(log.append, 1)
        flush()
        assert log == [1]

    def test_asyncio_call_soon(self):
        person = Person("Brad")
        changes = []

        async def main():
            set_scheduler(asyncio.get_running_loop().call_soon)
            handle = observe(person, changes.append)
            person.name = "Ann"
            assert changes == []
            await asyncio.sleep(0)
            delivered = list(changes)

            handle.dispose()
            person.name = "Bea"
            await asyncio.sleep(0)
            return delivered

        delivered = asyncio.run(main())
        assert [c.new_value for c in delivered] == ["Ann"]
        assert [c.new_value for c in changes] == ["Ann"]
