"""Textual integration for peeper. Opt-in — requires textual.

Guards and NoMatches handling live here, not at callsites. Textual coupling
is isolated in this module — core peeper stays agnostic.
"""

from contextlib import contextmanager

from textual.css.query import NoMatches
from peeper import observe as _observe, set_scheduler

# Pause depth per app, keyed by id(app); absent means not paused.
_pause_depth: dict[int, int] = {}


@contextmanager
def pause(app):
    """Drop guarded deliveries for app while widgets are being replaced.

    Pauses nest; deliveries resume when the outermost pause exits.
    """
    key = id(app)
    _pause_depth[key] = _pause_depth.get(key, 0) + 1
    try:
        yield
    finally:
        depth = _pause_depth.pop(key) - 1
        if depth:
            _pause_depth[key] = depth


def is_safe(app) -> bool:
    """Can a delivery touch app's widget tree right now?"""
    return app.is_running and id(app) not in _pause_depth


def use_app(app) -> None:
    """Deliver changes on the app's message loop via App.call_later."""
    set_scheduler(app.call_later)


def observe(app, obj, callback):
    """observe() that safely bridges to Textual widgets.

    Changes arriving while the app is paused or not running are dropped,
    and NoMatches from widget queries is swallowed. Returns the Disposer.
    """

    def _guarded(change):
        if not is_safe(app):
            return
        try:
            callback(change)
        except NoMatches:
            pass

    return _observe(obj, _guarded)
