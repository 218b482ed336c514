"""Per-order mutual exclusion for read-modify-write commands.

Only commands on the same order id serialize; different orders never
contend. Locks live in a weak-valued registry so ids that are no longer
in use do not accumulate.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from weakref import WeakValueDictionary

_registry_lock = threading.Lock()
_locks: WeakValueDictionary = WeakValueDictionary()


class _OrderLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self):
        self.lock = threading.Lock()


def _lock_for(order_id: str) -> _OrderLock:
    with _registry_lock:
        entry = _locks.get(order_id)
        if entry is None:
            entry = _OrderLock()
            _locks[order_id] = entry
        return entry


@contextmanager
def order_lock(order_id) -> Iterator[None]:
    """Hold the lock for ``order_id`` for the duration of the block."""
    entry = _lock_for(str(order_id))
    with entry.lock:
        yield
