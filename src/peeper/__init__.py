"""peeper: watch plain Python objects for attribute changes."""

from importlib.metadata import version as _version

__version__ = _version("peeper")

from peeper._queue import flush, tick, get_pending_count, set_scheduler
from peeper.observable import ChangeRecord, Disposer, make_observable, observe
# textual NOT auto-imported — opt-in only

__all__ = [
    "observe",
    "make_observable",
    "ChangeRecord",
    "Disposer",
    "flush",
    "tick",
    "get_pending_count",
    "set_scheduler",
]
