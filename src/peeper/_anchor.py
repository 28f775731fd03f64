"""Data anchor — plain Python structures that hold all registry state.

Entries are keyed by id() of the observed object, so equal-but-distinct
objects are tracked separately and unhashable objects can be observed.
A weakref finalizer drops the entry when the object is collected.
"""

import weakref

# Registry state, keyed by id(obj)
fields: dict[int, frozenset] = {}  # intercepted attribute names
subscribers: dict[int, list] = {}  # ordered subscriber callbacks


def register(obj, names: frozenset) -> list:
    """Create the entry for obj and return its subscriber list.

    The finalizer goes first: objects that refuse weak references raise
    TypeError here and leave no entry behind.
    """
    key = id(obj)
    weakref.finalize(obj, forget, key)
    fields[key] = names
    subscribers[key] = []
    return subscribers[key]


def forget(key: int) -> None:
    fields.pop(key, None)
    subscribers.pop(key, None)
