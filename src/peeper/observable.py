"""Observation registry — turn plain objects into change emitters.

make_observable() intercepts writes to an object's own public data
attributes. observe() subscribes a callback to those writes and returns a
Disposer. Every write schedules a ChangeRecord delivery on the deferred
task queue (see _queue); delivery reads the subscriber list when it runs.

Interception wraps the class's __setattr__ once; the wrapper only acts on
instances that have a registry entry. The object keeps its class, values
stay in the instance __dict__, and reads are untouched.

All state lives in _anchor — Disposers are thin handles.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Callable, Iterable, NamedTuple

from peeper import _anchor
from peeper._queue import schedule

logger = logging.getLogger("peeper.observable")


class ChangeRecord(NamedTuple):
    """Snapshot of one intercepted write, passed to every subscriber."""

    object: Any
    property: str
    old_value: Any
    new_value: Any


Subscriber = Callable[[ChangeRecord], None]


class Disposer:
    """Handle that cancels exactly one observe() registration."""

    __slots__ = ("_subscribers", "_callback", "_disposed")

    def __init__(self, subscribers: list[Subscriber], callback: Subscriber) -> None:
        self._subscribers = subscribers
        self._callback = callback
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Schedule removal of the callback. Safe to call more than once.

        Removal is deferred like dispatch, so a write made before this call
        is still delivered to the callback.
        """
        if self._disposed:
            return
        self._disposed = True
        if _index_of(self._subscribers, self._callback) is None:
            return
        schedule(_remove, self._subscribers, self._callback)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        name = getattr(self._callback, "__name__", repr(self._callback))
        return f"Disposer({name}, {state})"


def _index_of(subscribers: list[Subscriber], callback: Subscriber) -> int | None:
    for i, cb in enumerate(subscribers):
        if cb is callback:
            return i
    return None


def _remove(subscribers: list[Subscriber], callback: Subscriber) -> None:
    index = _index_of(subscribers, callback)
    if index is not None:
        del subscribers[index]


def _deliver(obj: Any, name: str, old_value: Any, new_value: Any) -> None:
    """Deferred half of a write: notify whoever is subscribed right now."""
    subscribers = _anchor.subscribers.get(id(obj))
    if not subscribers:
        return
    change = ChangeRecord(obj, name, old_value, new_value)
    for callback in list(subscribers):
        try:
            callback(change)
        except Exception:
            logger.exception("Subscriber %r failed on %s change", callback, name)


def _intercept(cls: type) -> None:
    """Route writes on instances of cls through the registry.

    The class keeps its identity; only its __setattr__ is wrapped, once.
    Instances without a registry entry go straight to the original.
    """
    if getattr(cls.__setattr__, "_peeper_intercepts", False):
        return

    base_setattr = cls.__setattr__

    def __setattr__(self, name: str, value: Any) -> None:
        intercepted = _anchor.fields.get(id(self))
        if (
            intercepted is None
            or name not in intercepted
            # Reached through super() from a subclass that intercepts itself
            or type(self).__setattr__ is not __setattr__
        ):
            base_setattr(self, name, value)
            return
        old_value = self.__dict__.get(name)
        base_setattr(self, name, value)
        schedule(_deliver, self, name, old_value, value)

    __setattr__._peeper_intercepts = True
    try:
        type.__setattr__(cls, "__setattr__", __setattr__)
    except TypeError:
        raise TypeError(f"cannot observe {cls.__name__!r} object: class cannot be patched") from None


def _qualifying_fields(obj: Any, exclusions: Iterable[str] | None) -> frozenset[str]:
    try:
        attrs = vars(obj)
    except TypeError:
        raise TypeError(
            f"cannot observe {type(obj).__name__!r} object: it has no __dict__"
        ) from None
    try:
        weakref.ref(obj)
    except TypeError:
        raise TypeError(
            f"cannot observe {type(obj).__name__!r} object: it does not support weak references"
        ) from None
    skip = frozenset(exclusions or ())
    return frozenset(
        name
        for name, value in attrs.items()
        if name not in skip and not name.startswith("_") and not callable(value)
    )


def make_observable(obj: Any, exclusions: Iterable[str] | None = None) -> None:
    """Intercept writes to obj's own public data attributes.

    Attributes named in exclusions, private (_-prefixed) names, callable
    values, and class-level attributes are left alone. Only attributes
    present now are intercepted. A second call on the same object does
    nothing.

    Raises TypeError for objects without a __dict__, objects that refuse
    weak references (such as SimpleNamespace), and instances of built-in
    classes such as functools.partial whose __setattr__ cannot be replaced.
    Nothing is registered or patched when it raises.
    """
    if id(obj) in _anchor.subscribers:
        return

    names = _qualifying_fields(obj, exclusions)
    if not names:
        logger.debug("No observable fields on %r; nothing intercepted", type(obj).__name__)
        return

    cls = type(obj)
    _intercept(cls)
    _anchor.register(obj, names)
    logger.debug("Made %s observable: %s", cls.__name__, ", ".join(sorted(names)))


def observe(obj: Any, callback: Subscriber) -> Disposer:
    """Call callback with a ChangeRecord after each write to obj's fields.

    Makes obj observable first if needed. Each call adds a new registration,
    even for a callback that is already subscribed.

    Usage:
        person = Person(id=1, name="Brad", age=12)
        changes = []

        handle = observe(person, changes.append)
        person.name = "Krzysztof"
        flush()
        # changes == [ChangeRecord(person, "name", "Brad", "Krzysztof")]

        handle.dispose()
        flush()
        person.age = 33
        flush()
        # changes unchanged
    """
    if id(obj) not in _anchor.subscribers:
        make_observable(obj)

    subscribers = _anchor.subscribers.get(id(obj))
    if subscribers is None:
        # No qualifying fields: hold the subscription, it is never notified.
        subscribers = _anchor.register(obj, frozenset())

    subscribers.append(callback)
    return Disposer(subscribers, callback)
