import pytest

import peeper._queue as _queue_mod


@pytest.fixture(autouse=True)
def _fresh_queue():
    """Each test starts on the built-in queue with nothing pending."""
    old_sched = _queue_mod._scheduler
    _queue_mod._scheduler = None
    _queue_mod._tasks.clear()
    try:
        yield
    finally:
        _queue_mod._scheduler = old_sched
        _queue_mod._tasks.clear()
