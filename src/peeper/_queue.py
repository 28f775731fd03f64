"""Deferred task queue — the single-threaded turn loop behind dispatch.

Both change delivery and subscriber removal are deferred: they are queued
here and run later in FIFO order, never synchronously with the write or the
dispose() call that scheduled them. Their relative order is exactly the
order they were scheduled in.

By default tasks wait in a module-level queue until flush() or tick() runs
them. set_scheduler() hands them to a host loop instead.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable

logger = logging.getLogger("peeper.queue")

Scheduler = Callable[..., Any]

_scheduler: Scheduler | None = None

# Tasks waiting for the next flush/tick: (fn, args)
_tasks: deque[tuple[Callable[..., None], tuple]] = deque()


def set_scheduler(scheduler: Scheduler | None) -> None:
    """Route deferred tasks to a host loop.

    The scheduler is called as scheduler(fn, *args), which is the shape of
    asyncio's loop.call_soon and Textual's App.call_later:

        peeper.set_scheduler(asyncio.get_running_loop().call_soon)

    Pass None to go back to the built-in queue. Tasks already queued stay
    queued until the next flush().
    """
    global _scheduler
    _scheduler = scheduler


def schedule(fn: Callable[..., None], *args: Any) -> None:
    """Defer fn(*args) to a later turn."""
    if _scheduler is not None:
        _scheduler(fn, *args)
    else:
        _tasks.append((fn, args))


def _run(fn: Callable[..., None], args: tuple) -> None:
    try:
        fn(*args)
    except Exception:
        logger.exception("Deferred task %r failed", fn)


def tick() -> int:
    """Run one turn: the tasks queued before this call.

    Tasks scheduled while the turn runs wait for the next one.
    Returns the number of tasks run.
    """
    count = len(_tasks)
    for _ in range(count):
        fn, args = _tasks.popleft()
        _run(fn, args)
    return count


def flush() -> int:
    """Run queued tasks until the queue is empty, including newly scheduled ones."""
    count = 0
    while _tasks:
        fn, args = _tasks.popleft()
        _run(fn, args)
        count += 1
    return count


def get_pending_count() -> int:
    """Number of tasks waiting in the built-in queue. Useful for testing."""
    return len(_tasks)
